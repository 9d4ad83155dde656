from collections.abc import Mapping
from dataclasses import asdict, dataclass

from whisper_gateway.config import parse_bool

DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class TranscriptionOptions:
    """Per-request recognition options parsed from the upload form."""

    language: str = DEFAULT_LANGUAGE
    translate: bool = False
    subtitles: bool = False
    speed_up: bool = False

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> "TranscriptionOptions":
        language = (form.get("lang") or "").strip() or DEFAULT_LANGUAGE
        return cls(
            language=language,
            translate=parse_bool(form.get("translate")),
            subtitles=parse_bool(form.get("subs")),
            speed_up=parse_bool(form.get("speedUp")),
        )


@dataclass(frozen=True)
class TranscriptionResult:
    job_id: str
    text: str


@dataclass(frozen=True)
class ResponseEnvelope:
    """Uniform JSON body returned by the transcription endpoints."""

    message: str = ""
    result: str = ""
    id: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)
