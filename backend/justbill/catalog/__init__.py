from justbill.catalog.reference_catalog import ReferenceCatalog, load_catalog

__all__ = ["ReferenceCatalog", "load_catalog"]
