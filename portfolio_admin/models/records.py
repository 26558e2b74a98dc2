"""
Pydantic models for the record kinds kept in the store.

Each kind has three models:
- the record itself, as read back from the store (lenient, unknown columns ignored)
- a draft, validated before an insert
- a patch, validated before an update (only the provided fields are checked)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
)
from pydantic import ValidationError as PydanticValidationError

from portfolio_admin.api.protocol import Order, Row

SETTINGS_ID = 1

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _strip_or_none(value: Any) -> Any:
    """Treats blank text as 'not provided'."""
    if isinstance(value, str):
        return value.strip() or None
    return value


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        _URL_ADAPTER.validate_python(value)
    except PydanticValidationError:
        raise ValueError("Invalid URL") from None
    return value


def _split_technologies(value: Any) -> Any:
    """Accepts the admin form's comma-separated input as well as a list."""
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple)):
        cleaned = [t.strip() if isinstance(t, str) else t for t in value]
        return [t for t in cleaned if t != ""]
    return value


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("Level must be a number between 0 and 100")
    return value


def _clamp_level(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return max(0, min(100, int(value)))
    return value


RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
OptionalText = Annotated[Optional[str], BeforeValidator(_strip_or_none)]
Url = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1), AfterValidator(_check_url)
]
OptionalUrl = Annotated[
    Optional[str], BeforeValidator(_strip_or_none), AfterValidator(_check_url)
]
Technologies = Annotated[
    list[RequiredText], BeforeValidator(_split_technologies), Field(min_length=1)
]
Level = Annotated[int, BeforeValidator(_reject_bool), Field(ge=0, le=100)]
Theme = Literal["dark", "light"]


# Records, as read from the store


class Record(BaseModel):
    """Common columns of every stored record."""

    model_config = ConfigDict(extra="ignore")

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Project(Record):
    title: str
    description: str = ""
    image: Optional[str] = None
    technologies: Annotated[
        list[str], BeforeValidator(lambda v: [] if v is None else v)
    ] = Field(default_factory=list)
    github: Optional[str] = None
    demo: Optional[str] = None
    featured: bool = False


class Skill(Record):
    name: str
    category: str
    level: Annotated[int, BeforeValidator(_clamp_level)] = 0
    icon: Optional[str] = None


class SocialLink(Record):
    name: str
    url: str
    icon: str = ""


class ContactInfo(Record):
    title: str
    value: str
    description: Optional[str] = None
    icon: str = ""
    # Display hints, never persisted.
    bg_color: Optional[str] = Field(default=None, exclude=True)
    border_color: Optional[str] = Field(default=None, exclude=True)
    color: Optional[str] = Field(default=None, exclude=True)


class Settings(Record):
    id: int = SETTINGS_ID
    theme: str = "dark"
    emailjs_service_id: Optional[str] = None
    emailjs_template_id: Optional[str] = None
    emailjs_public_key: Optional[str] = None

    @classmethod
    def default(cls) -> "Settings":
        """The settings in effect before anything has been saved."""
        return cls(id=SETTINGS_ID, theme="dark")


# Write payloads


class Draft(BaseModel):
    """Base for insert payloads."""

    model_config = ConfigDict(extra="forbid")

    def to_row(self) -> Row:
        return self.model_dump(mode="json")


class Patch(Draft):
    """
    Base for update payloads.

    Required fields are declared with their non-optional type and a None
    default: leaving them out is fine, but sending an explicit null is rejected.
    """

    def to_row(self) -> Row:
        return self.model_dump(mode="json", exclude_unset=True)


class ProjectDraft(Draft):
    title: RequiredText
    description: RequiredText
    image: OptionalUrl = None
    technologies: Technologies
    github: OptionalUrl = None
    demo: OptionalUrl = None
    featured: bool = False


class ProjectPatch(Patch):
    title: RequiredText = None
    description: RequiredText = None
    image: OptionalUrl = None
    technologies: Technologies = None
    github: OptionalUrl = None
    demo: OptionalUrl = None
    featured: bool = None


class SkillDraft(Draft):
    name: RequiredText
    category: RequiredText
    level: Level
    icon: OptionalText = None


class SkillPatch(Patch):
    name: RequiredText = None
    category: RequiredText = None
    level: Level = None
    icon: OptionalText = None


class SocialLinkDraft(Draft):
    name: RequiredText
    url: Url
    icon: RequiredText


class SocialLinkPatch(Patch):
    name: RequiredText = None
    url: Url = None
    icon: RequiredText = None


class ContactInfoDraft(Draft):
    title: RequiredText
    value: RequiredText
    description: OptionalText = None
    icon: RequiredText
    bg_color: OptionalText = Field(default=None, exclude=True)
    border_color: OptionalText = Field(default=None, exclude=True)
    color: OptionalText = Field(default=None, exclude=True)


class ContactInfoPatch(Patch):
    title: RequiredText = None
    value: RequiredText = None
    description: OptionalText = None
    icon: RequiredText = None
    bg_color: OptionalText = Field(default=None, exclude=True)
    border_color: OptionalText = Field(default=None, exclude=True)
    color: OptionalText = Field(default=None, exclude=True)


class SettingsPatch(Patch):
    theme: Theme = None
    emailjs_service_id: OptionalText = None
    emailjs_template_id: OptionalText = None
    emailjs_public_key: OptionalText = None


# Record kinds


@dataclass(frozen=True)
class KindInfo:
    """Everything the data-access layer needs to know about one record kind."""

    table: str
    label: str
    order: Order
    record_model: type[Record]
    draft_model: type[Draft] | None
    patch_model: type[Patch]
    singleton: bool = False


class RecordKind(str, Enum):
    PROJECTS = "projects"
    SKILLS = "skills"
    SOCIAL_LINKS = "social_links"
    CONTACT_INFO = "contact_info"
    SETTINGS = "settings"

    @property
    def info(self) -> KindInfo:
        return KIND_INFO[self]

    @property
    def cache_key(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: str) -> "RecordKind":
        """Resolves 'social-links', 'Social_Links', etc. to a kind."""
        normalized = name.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(k.value.replace("_", "-") for k in cls)
            raise ValueError(f"Unknown record kind '{name}'. Choose from: {choices}.")


KIND_INFO: dict[RecordKind, KindInfo] = {
    RecordKind.PROJECTS: KindInfo(
        table="projects",
        label="Projects",
        order=Order("created_at", descending=True),
        record_model=Project,
        draft_model=ProjectDraft,
        patch_model=ProjectPatch,
    ),
    RecordKind.SKILLS: KindInfo(
        table="skills",
        label="Skills",
        order=Order("level", descending=True),
        record_model=Skill,
        draft_model=SkillDraft,
        patch_model=SkillPatch,
    ),
    RecordKind.SOCIAL_LINKS: KindInfo(
        table="social_links",
        label="Social Links",
        order=Order("name"),
        record_model=SocialLink,
        draft_model=SocialLinkDraft,
        patch_model=SocialLinkPatch,
    ),
    RecordKind.CONTACT_INFO: KindInfo(
        table="contact_info",
        label="Contact Info",
        order=Order("title"),
        record_model=ContactInfo,
        draft_model=ContactInfoDraft,
        patch_model=ContactInfoPatch,
    ),
    RecordKind.SETTINGS: KindInfo(
        table="settings",
        label="Settings",
        order=Order("id"),
        record_model=Settings,
        draft_model=None,
        patch_model=SettingsPatch,
        singleton=True,
    ),
}


def field_errors(exc: PydanticValidationError) -> dict[str, str]:
    """Flattens a pydantic error into one message per field."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "__root__"
        errors.setdefault(field, _field_message(field, err))
    return errors


def _field_message(field: str, err: dict[str, Any]) -> str:
    label = field.replace("_", " ").capitalize()
    err_type = err.get("type", "")
    ctx = err.get("ctx") or {}

    if err_type == "missing":
        return f"{label} is required"
    if err_type == "string_too_short":
        min_length = ctx.get("min_length", 1)
        if min_length <= 1:
            return f"{label} is required"
        return f"{label} must be at least {min_length} characters"
    if err_type == "too_short" and field == "technologies":
        return "At least one technology is required"
    if err_type == "extra_forbidden":
        return f"Unknown field '{field}'"
    if err.get("input", "") is None:
        return f"{label} cannot be empty"
    if err_type == "value_error" and field == "email":
        return "Invalid email address"

    message = str(err.get("msg", "Invalid value"))
    return message.removeprefix("Value error, ")


def group_skills_by_category(skills: list[Skill]) -> dict[str, list[Skill]]:
    """Groups skills by lower-cased category, keeping first-seen order."""
    groups: dict[str, list[Skill]] = {}
    for skill in skills:
        groups.setdefault(skill.category.strip().lower(), []).append(skill)
    return groups
