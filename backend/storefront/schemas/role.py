from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.core.permissions import is_known_capability


def _check_capabilities(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    unknown = sorted({v for v in value if not is_known_capability(v)})
    if unknown:
        raise ValueError(f"unknown permissions: {', '.join(unknown)}")
    return sorted(set(value))


class RoleCreate(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    slug: str | None = Field(default=None, max_length=50, pattern=r"^[a-z0-9_-]+$")
    description: str | None = Field(default=None, max_length=500)
    permissions: list[str] = Field(default_factory=list)
    priority: int = Field(default=0, ge=0, le=100)

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, value):
        return _check_capabilities(value)


class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    permissions: list[str] | None = None
    priority: int | None = Field(default=None, ge=0, le=100)
    is_active: bool | None = None

    @field_validator("permissions")
    @classmethod
    def known_permissions(cls, value):
        return _check_capabilities(value)


class RoleOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    permissions: list[str]
    priority: int
    is_system: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
