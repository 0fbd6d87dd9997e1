"""Unit tests for JSON Patch parsing and application."""
from __future__ import annotations

import pytest

from spahub.exceptions import RequestValidationError
from spahub.patching import OperationResult, apply_patch, parse_patch_document


@pytest.mark.parametrize("document", [None, [], {"op": "replace"}])
def test_parse_patch_document_requires_operation_list(document) -> None:
    with pytest.raises(RequestValidationError) as info:
        parse_patch_document(document)

    assert info.value.errors == {"patch": ["Patch document must be a non-empty list of operations."]}


def test_parse_patch_document_reports_errors_by_index() -> None:
    document = [
        {"op": "replace", "path": "/name", "value": "Glow"},
        "replace",
        {"op": "add", "path": "name"},
    ]

    with pytest.raises(RequestValidationError) as info:
        parse_patch_document(document)

    errors = info.value.errors
    assert errors["[1]"] == ["Operation must be a JSON object."]
    assert errors["[2].op"] == ["Only 'replace' operations are supported."]
    assert errors["[2].path"] == ["Path must look like '/field_name'."]
    assert "[0].op" not in errors


def test_parse_patch_document_normalizes_operation_case() -> None:
    operations = parse_patch_document([{"op": "REPLACE", "path": "/name", "value": "Glow"}])

    assert operations[0].op == "replace"
    assert operations[0].value == "Glow"


def test_apply_patch_replaces_known_fields_only() -> None:
    target = {"name": "Glow", "description": None}
    operations = parse_patch_document([{"op": "replace", "path": "/description", "value": "Day spa"}])

    patched = apply_patch(operations, target)

    assert patched == {"name": "Glow", "description": "Day spa"}
    assert target["description"] is None


def test_apply_patch_rejects_unknown_path() -> None:
    operations = parse_patch_document([{"op": "replace", "path": "/owner", "value": 2}])

    with pytest.raises(RequestValidationError) as info:
        apply_patch(operations, {"name": "Glow"})

    assert info.value.errors == {"/owner": ["Unknown path '/owner'."]}


def test_operation_result_to_dict() -> None:
    assert OperationResult.success("Saved.").to_dict() == {"message": "Saved."}
    assert OperationResult.success().to_dict() == {"message": "Updated successfully."}
    assert OperationResult.no_changes().to_dict() == {"error": "no_changes", "message": "No changes were made."}

    failed = OperationResult.validation_failed({"name": ["Name is required."]})
    assert failed.is_success is False
    assert failed.to_dict()["errors"] == {"name": ["Name is required."]}
