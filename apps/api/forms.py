"""
Form parsing dependency.

Usage:
    @router.post("/profile")
    async def update_profile(form: ProfileForm = Depends(MultipartForm(ProfileForm))):
        ...
"""

import inspect
from collections.abc import Callable
from typing import Any

from fastapi import Depends, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from apps.api.dependencies import get_file_system
from apps.api.multipart import stage_request_payload
from packages.filesystem import FieldTree, FileSystem, ValidationError

VALIDATION_FAILED_MESSAGE = "The given data was invalid."


def pydantic_errors_to_field_errors(exc: PydanticValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


class MultipartForm:
    """
    Parse the request payload into a field tree, then validate it.

    ``validator`` is either a pydantic model class, whose instance is
    returned, or a callable receiving the field tree. A callable returning
    None leaves the field tree as the dependency value.
    """

    def __init__(self, validator: type[BaseModel] | Callable[[FieldTree], Any] | None = None):
        self.validator = validator

    async def __call__(
        self,
        request: Request,
        file_system: FileSystem = Depends(get_file_system),
    ) -> Any:
        payload = await stage_request_payload(request, file_system)
        fields = file_system.parse_form_data(payload)

        if self.validator is None:
            return fields

        if inspect.isclass(self.validator) and issubclass(self.validator, BaseModel):
            try:
                return self.validator.model_validate(fields)
            except PydanticValidationError as e:
                raise ValidationError(
                    VALIDATION_FAILED_MESSAGE,
                    errors=pydantic_errors_to_field_errors(e),
                ) from e

        result = self.validator(fields)
        if inspect.isawaitable(result):
            result = await result
        return fields if result is None else result
