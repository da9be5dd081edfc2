"""Smoke tests for the command-line entry point."""
from __future__ import annotations

import json
from pathlib import Path
import sys

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import main as cli
from justbill.backends.base import OcrResult
from justbill.extraction.orchestrator import ExtractionBackends, ExtractionOrchestrator


class FakeOcr:
    def __init__(self, result: OcrResult):
        self.result = result

    def recognize(self, data, filename):
        return self.result


@pytest.fixture
def offline_orchestrator(monkeypatch, demo_text):
    """Swap the env-driven backends for in-process fakes."""
    def install(ocr=None):
        orchestrator = ExtractionOrchestrator(ExtractionBackends(ocr=ocr), demo_text=demo_text, tier_timeout=5)
        monkeypatch.setattr(cli, "build_orchestrator", lambda: orchestrator)
        return orchestrator
    return install


def test_demo_report(offline_orchestrator, capsys):
    offline_orchestrator()

    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "City General Hospital" in out
    assert "Parsed via demo-mock" in out
    assert "Items: 14" in out


def test_demo_json(offline_orchestrator, capsys):
    offline_orchestrator()

    assert cli.main(["--json", "--state-id", "2"]) == 0

    body = json.loads(capsys.readouterr().out)
    assert body["parsing_method"] == "demo-mock"
    assert body["state"]["id"] == 2
    assert body["summary"]["item_count"] == len(body["items"]) == 14


def test_uploaded_bill_rejected_as_non_medical(offline_orchestrator, tmp_path, capsys):
    grocery = "FreshMart Grocery Supermarket\nRice 5kg 450.00\nTotal 450.00"
    offline_orchestrator(ocr=FakeOcr(OcrResult(success=True, text=grocery, confidence=85.0)))
    bill = tmp_path / "bill.png"
    bill.write_bytes(b"\x89PNG\r\n\x1a\nfake")

    assert cli.main([str(bill)]) == 2
    assert "grocery" in capsys.readouterr().out


def test_missing_file(offline_orchestrator, tmp_path):
    offline_orchestrator()
    assert cli.main([str(tmp_path / "nope.png")]) == 1


def test_unsupported_file_type(offline_orchestrator, tmp_path):
    offline_orchestrator()
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")
    assert cli.main([str(notes)]) == 1


def test_unknown_state(offline_orchestrator, capsys):
    offline_orchestrator()
    assert cli.main(["--state-id", "999"]) == 1
    assert capsys.readouterr().out == ""
