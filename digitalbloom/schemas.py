from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, model_validator


STYLE_OPTIONS = [
    "Modern & Clean",
    "Elegant & Professional",
    "Playful & Creative",
    "Minimalist & Simple",
]


class ProfileDraft(BaseModel):
    """
    Questionnaire contents as typed so far.

    Drafts are never validated beyond types: they carry whatever the user
    entered so a failed suggestion or generation can re-render the form
    without losing input. Field aliases are the form field names.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", alias="businessName", description="Business name")
    type: str = Field(default="", alias="businessType", description="Kind of business, e.g. 'Restaurant'")
    description: str = Field(default="", alias="businessDescription", description="What the business does")
    target_audience: str = Field(default="", alias="targetAudience", description="Ideal customer")
    services: str = Field(default="", description="Comma-separated services or products")
    style: str = Field(default=STYLE_OPTIONS[0], description="Desired tone/style of the site")
    color_scheme: str = Field(default="Blue & White", alias="colorScheme", description="Color preference")

    def with_suggestions(self, suggestions: "ContentSuggestions") -> "ProfileDraft":
        return self.model_copy(
            update={
                "description": suggestions.description,
                "target_audience": suggestions.target_audience,
                "services": suggestions.services,
            }
        )

    def missing_fields(self) -> List[str]:
        return [
            field.alias or name
            for name, field in type(self).model_fields.items()
            if not getattr(self, name).strip()
        ]


class BusinessProfile(ProfileDraft):
    """A questionnaire submission with every field filled in."""

    @model_validator(mode="after")
    def _require_all_fields(self) -> "BusinessProfile":
        missing = self.missing_fields()
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")
        return self


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, alias="businessName")
    type: str = Field(..., min_length=1, alias="businessType")


class ContentSuggestions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: StrictStr = Field(..., alias="businessDescription")
    target_audience: StrictStr = Field(..., alias="targetAudience")
    services: StrictStr = Field(...)


class GeneratedSite(BaseModel):
    """Generated code. Opaque text once created; only user edits change it."""

    model_config = ConfigDict(populate_by_name=True)

    markup: StrictStr = Field(..., alias="html", description="Body markup of the site")
    styles: StrictStr = Field(..., alias="css", description="Stylesheet contents")
    script: StrictStr = Field(..., alias="js", description="Script contents")


class ImageStatus(str, Enum):
    RESOLVED = "resolved"
    DEGRADED = "degraded"


class ImageResult(BaseModel):
    prompt: str
    uri: str
    status: ImageStatus = ImageStatus.RESOLVED
    error: Optional[str] = Field(default=None, description="Why the image fell back, when degraded")

    @property
    def degraded(self) -> bool:
        return self.status == ImageStatus.DEGRADED


class ImageSlot(BaseModel):
    id: str
    src: str = ""
    alt: str = ""


class SiteGenerationResult(BaseModel):
    site: GeneratedSite
    images: List[ImageResult] = Field(default_factory=list)
    unresolved: List[str] = Field(
        default_factory=list,
        description="Sentinel-like fragments that did not match the exact placeholder syntax",
    )

    @property
    def degraded_count(self) -> int:
        return sum(1 for image in self.images if image.degraded)


class WizardStep(str, Enum):
    QUESTIONNAIRE = "questionnaire"
    GENERATING = "generating"
    RESULT = "result"


class WizardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: WizardStep = WizardStep.QUESTIONNAIRE
    profile: Optional[ProfileDraft] = None
    result: Optional[SiteGenerationResult] = None
    error: Optional[str] = None


class ExportArtifact(BaseModel):
    filename: str
    content: str
    media_type: str
