"""Generic JSON Patch update flow shared by the services.

A patch is applied to a request built from the current entity, the result is
validated like a regular request body, and only then is the entity mutated,
checked against its specification and saved.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError

from .exceptions import DomainValidationError, RequestValidationError
from .repositories import Repository
from .schemas import PatchOperation, format_errors
from .specifications import Specification

EntityT = TypeVar("EntityT")
RequestT = TypeVar("RequestT", bound=BaseModel)


@dataclass
class OperationResult:
    is_success: bool
    status: str
    message: str | None = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def success(cls, message: str | None = None) -> OperationResult:
        return cls(True, "success", message)

    @classmethod
    def no_changes(cls, message: str = "No changes were made.") -> OperationResult:
        return cls(False, "no_changes", message)

    @classmethod
    def validation_failed(cls, errors: dict[str, list[str]]) -> OperationResult:
        return cls(False, "validation_failed", "One or more validation errors occurred.", errors)

    def to_dict(self) -> dict[str, object]:
        if self.is_success:
            return {"message": self.message or "Updated successfully."}
        body: dict[str, object] = {"error": self.status, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


def parse_patch_document(document: Any) -> list[PatchOperation]:
    """Validate a JSON Patch document; only ``replace`` operations are accepted."""
    if not isinstance(document, list) or not document:
        raise RequestValidationError({"patch": ["Patch document must be a non-empty list of operations."]})

    operations: list[PatchOperation] = []
    errors: dict[str, list[str]] = {}
    for index, raw in enumerate(document):
        if not isinstance(raw, dict):
            errors.setdefault(f"[{index}]", []).append("Operation must be a JSON object.")
            continue
        try:
            operations.append(PatchOperation.model_validate(raw))
        except ValidationError as exc:
            for name, messages in format_errors(exc).items():
                errors.setdefault(f"[{index}].{name}", []).extend(messages)
    if errors:
        raise RequestValidationError(errors)
    return operations


def apply_patch(operations: list[PatchOperation], target: dict[str, Any]) -> dict[str, Any]:
    patched = dict(target)
    errors: dict[str, list[str]] = {}
    for operation in operations:
        key = operation.path.lstrip("/").replace("/", ".")
        if key not in target:
            errors.setdefault(operation.path, []).append(f"Unknown path '{operation.path}'.")
            continue
        patched[key] = operation.value
    if errors:
        raise RequestValidationError(errors)
    return patched


def apply_patch_update(
    document: Any,
    entity: EntityT,
    to_request: Callable[[EntityT], dict[str, Any]],
    request_model: type[RequestT],
    update: Callable[[RequestT, EntityT], bool],
    specification: Specification[EntityT] | None,
    repository: Repository,
    entity_label: str,
    has_changes: Callable[[RequestT, EntityT], bool] | None = None,
    before_update: Callable[[RequestT, EntityT], None] | None = None,
) -> OperationResult:
    """Run patch, validate, update, specification check and save for one entity.

    ``has_changes`` defaults to comparing the validated request with the
    request built from the unmodified entity.
    """
    operations = parse_patch_document(document)
    current = to_request(entity)
    patched = apply_patch(operations, current)

    try:
        request = request_model.model_validate(patched)
    except ValidationError as exc:
        return OperationResult.validation_failed(format_errors(exc))

    changed = has_changes(request, entity) if has_changes else _differs(request, current)
    if not changed:
        return OperationResult.no_changes(f"No changes were made to the {entity_label}.")

    if before_update is not None:
        before_update(request, entity)

    if not update(request, entity):
        return OperationResult.no_changes(f"No changes were made to the {entity_label}.")

    result = specification.is_satisfied_by(entity) if specification else None
    if result is not None and not result.is_valid:
        repository.rollback()
        raise DomainValidationError(f"Invalid {entity_label} data.", result.errors)

    repository.update(entity)
    repository.save_changes()
    return OperationResult.success(f"The {entity_label} has been updated successfully.")


def _differs(request: BaseModel, current: dict[str, Any]) -> bool:
    return any(current.get(name) != value for name, value in request.model_dump().items())
