from justbill.verifier.classifier import classify_price, summarize
from justbill.verifier.fuzzy import fuzzy_score
from justbill.verifier.price_matcher import PriceMatcher, compare_prices

__all__ = ["PriceMatcher", "classify_price", "compare_prices", "fuzzy_score", "summarize"]
