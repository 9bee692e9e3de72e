"""Request and response models for the HTTP analysis endpoints."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def wants_voice(value: Union[bool, str, None]) -> bool:
    """Interpret the ``returnVoice`` flag (``"true"`` or boolean ``true``)."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


class PrivacyMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_retention: str = Field(default="zero", serialization_alias="dataRetention")
    storage_duration: str = Field(default="ephemeral", serialization_alias="storageDuration")
    compliance: Optional[list[str]] = None


class VoiceStatus(BaseModel):
    """Reported when the caller asked for spoken output, which is not offered."""

    requested: bool = True
    available: bool = False


class TextAnalysisRequest(BaseModel):
    """JSON body of ``POST /api/analyze-text``.

    ``text`` is optional at the schema level so a missing value is reported
    as a 400 by the pipeline rather than a schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    prompt: Optional[str] = None
    return_voice: Union[bool, str, None] = Field(default=None, alias="returnVoice")


class AnalysisResult(BaseModel):
    analysis: str
    summary: str
    privacy: PrivacyMetadata
    voice: Optional[VoiceStatus] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TextAnalysisResult(BaseModel):
    analysis: str
    privacy: PrivacyMetadata
    voice: Optional[VoiceStatus] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
