"""Tests for the batch runner and batch operations"""

import json
import threading
import time

import pytest

from oscalint.batch import (
    BatchOperationRequest,
    BatchOperationType,
    BatchRunner,
    FileContent,
    FileOutcome,
)
from oscalint.formats import OscalFormat


def files(*names):
    return [FileContent(filename=name, content=name) for name in names]


def fail_on_b(file):
    if file.filename == "B":
        raise ValueError("cannot read B")
    return file.content.lower()


@pytest.mark.parametrize("max_workers", [1, 4, None])
def test_failure_is_isolated_and_order_kept(max_workers):
    batch = BatchRunner(max_workers=max_workers).run_batch("op-1", files("A", "B", "C"), fail_on_b)

    assert [r.filename for r in batch.results] == ["A", "B", "C"]
    assert batch.total_files == 3
    assert batch.success_count == 2
    assert batch.failure_count == 1
    assert batch.success is False
    assert batch.total_duration_ms == sum(r.duration_ms for r in batch.results)

    failed = batch.results[1]
    assert failed.success is False
    assert failed.result is None
    assert failed.error == "Processing error: cannot read B"
    assert batch.results[0].result == "a"
    assert batch.results[0].error is None


def test_zero_files():
    batch = BatchRunner().run_batch("empty", [], fail_on_b)

    assert batch.to_dict() == {
        "success": True,
        "operationId": "empty",
        "totalFiles": 0,
        "successCount": 0,
        "failureCount": 0,
        "results": [],
        "totalDurationMs": 0,
    }


def test_results_follow_input_order_when_completion_order_differs():
    def slow_first(file):
        if file.filename == "first":
            time.sleep(0.05)
        return file.filename

    batch = BatchRunner(max_workers=3).run_batch("op", files("first", "second", "third"), slow_first)
    assert [r.result for r in batch.results] == ["first", "second", "third"]


def test_progress_callback_reports_every_file():
    calls = []
    lock = threading.Lock()

    def record(completed, total):
        with lock:
            calls.append((completed, total))

    BatchRunner(max_workers=2, progress_callback=record).run_batch("op", files("A", "B", "C"), fail_on_b)
    assert sorted(calls) == [(1, 3), (2, 3), (3, 3)]


def test_operation_id_is_generated():
    batch = BatchRunner().run_batch(None, files("A"), fail_on_b)
    assert len(batch.operation_id) == 36


def test_file_outcome_controls_success():
    batch = BatchRunner(max_workers=1).run_batch(
        "op", files("A"), lambda file: FileOutcome(success=False, result={"x": 1}, error="rejected")
    )
    result = batch.results[0]
    assert (result.success, result.result, result.error) == (False, {"x": 1}, "rejected")
    assert batch.success is False


class TestOperations:
    def test_validate_batch(self, validation_run, catalog):
        broken = dict(catalog)
        broken["catalog"] = dict(catalog["catalog"], metadata={})
        request = BatchOperationRequest(
            operation_type="validate",
            files=[
                FileContent("good.json", json.dumps(catalog), "json"),
                FileContent("bad.json", json.dumps(broken), "json"),
                FileContent("garbage.json", "{", "json"),
            ],
        )
        runner = BatchRunner(max_workers=2)

        batch = runner.submit(request, validation_run)

        assert [r.success for r in batch.results] == [True, False, False]
        bad = batch.results[1]
        assert bad.result.valid is False
        assert bad.error == bad.result.errors[0].message
        assert batch.results[2].error.startswith("Invalid JSON")
        assert runner.get_result(request.operation_id) is batch

    def test_convert_batch(self, catalog_json, catalog_xml):
        request = BatchOperationRequest(
            operation_type=BatchOperationType.CONVERT,
            files=[
                FileContent("catalog.json", catalog_json, OscalFormat.JSON),
                FileContent("catalog.xml", catalog_xml, OscalFormat.XML),
            ],
            to_format="yaml",
        )
        runner = BatchRunner(max_workers=1)

        batch = runner.submit(request)

        assert batch.results[0].success
        assert batch.results[0].result.content.startswith("catalog:")
        assert not batch.results[1].success
        assert "not supported" in batch.results[1].error
        assert batch.failure_count == 1

    def test_convert_requires_target_format(self):
        request = BatchOperationRequest(operation_type="convert", files=files("A"))
        with pytest.raises(ValueError):
            BatchRunner().submit(request)

    def test_unknown_operation_type(self):
        with pytest.raises(ValueError):
            BatchOperationRequest(operation_type="merge")

    def test_request_from_dict(self):
        request = BatchOperationRequest.from_dict({
            "operationType": "CONVERT",
            "toFormat": "yml",
            "files": [{"filename": "a.json", "content": "{}", "format": "json"}],
        })
        assert request.operation_type is BatchOperationType.CONVERT
        assert request.to_format is OscalFormat.YAML
        assert request.files[0].format is OscalFormat.JSON

    def test_result_store(self, catalog_json):
        runner = BatchRunner(max_workers=1)
        request = BatchOperationRequest("convert", [FileContent("c.json", catalog_json)], to_format="yaml")
        runner.submit(request)

        assert len(runner.all_results()) == 1
        runner.clear_results()
        assert runner.all_results() == []
        assert runner.get_result(request.operation_id) is None

    def test_file_result_serializes_payload(self, catalog_json):
        request = BatchOperationRequest("convert", [FileContent("c.json", catalog_json)], to_format="json")
        payload = BatchRunner(max_workers=1).submit(request).to_dict()
        assert payload["results"][0]["result"]["toFormat"] == "json"
        assert payload["results"][0]["durationMs"] >= 0
