"""
Pydantic schemas for the flat /pages query surface.

Query values arrive as strings. Integer fields are checked with the same
rule as the rest of the service (plain decimal digits, optional minus sign)
before pydantic coerces them, so "1.0" or "1e3" are rejected rather than
silently truncated. Each query model carries the failure `reason` reported
when any of its fields is missing or malformed.
"""
from typing import Annotated, Any, ClassVar, Dict, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from codemaker.core import page_key
from codemaker.core.errors import ValidationError
from codemaker.core.validation import is_integer


def _strict_int(value: Any) -> Any:
    if not is_integer(value):
        raise ValueError("not an integer")
    return int(value)


def _valid_key(value: Any) -> Any:
    if not page_key.is_valid_key(value):
        raise ValueError("invalid page key")
    return value


QueryInt = Annotated[int, BeforeValidator(_strict_int)]
PageKey = Annotated[str, BeforeValidator(_valid_key)]


class QueryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    reason: ClassVar[str] = "query attribute invalid or missing"

    @classmethod
    def from_query(cls, params: Dict[str, Any]):
        """
        Build the model from raw query params.

        Raises:
            ValidationError: carrying this model's `reason`
        """
        try:
            return cls.model_validate(params)
        except PydanticValidationError as e:
            raise ValidationError(cls.reason) from e


class PageGeometryQuery(QueryModel):
    reason: ClassVar[str] = "new/update page attribute invalid or missing"

    width: QueryInt = Field(..., ge=0, description="Paper width (mm)")
    height: QueryInt = Field(..., ge=0, description="Paper height (mm)")
    left_code_x: QueryInt = Field(..., ge=0, alias="leftCodeX")
    left_code_y: QueryInt = Field(..., ge=0, alias="leftCodeY")
    right_code_x: QueryInt = Field(..., ge=0, alias="rightCodeX")
    right_code_y: QueryInt = Field(..., ge=0, alias="rightCodeY")

    def geometry(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True)


class DestinationQuery(QueryModel):
    reason: ClassVar[str] = "update destination attribute invalid or missing"

    destination: str


class PageTypeQuery(QueryModel):
    reason: ClassVar[str] = "update type attribute invalid or missing"

    type: QueryInt = Field(..., ge=0)


class TickBoxQuery(QueryModel):
    reason: ClassVar[str] = "new/update tickbox attribute invalid or missing"

    x: QueryInt = Field(..., ge=0, description="Box centre x (mm)")
    y: QueryInt = Field(..., ge=0, description="Box centre y (mm)")
    page: PageKey
    description: Optional[str] = None
    quantity: Optional[QueryInt] = Field(None, gt=0)
    temp_id: Optional[QueryInt] = Field(None, alias="tempId")


class DeleteTickBoxQuery(QueryModel):
    reason: ClassVar[str] = "delete tickbox attribute invalid or missing"

    box_id: QueryInt = Field(..., ge=0, alias="deletebox")
    page: PageKey


class AudioAreaQuery(QueryModel):
    """Left/top may be negative: audio regions can start outside the marker grid."""

    reason: ClassVar[str] = "new audio attribute invalid or missing"

    left: QueryInt
    top: QueryInt
    right: QueryInt = Field(..., ge=0)
    bottom: QueryInt = Field(..., ge=0)
    sound_cloud_id: Optional[str] = Field(None, alias="soundCloudId")
    page_id: PageKey = Field(..., alias="pageId")
