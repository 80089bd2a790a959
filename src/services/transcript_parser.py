"""Turns uploaded VTT/SRT caption files into meeting transcripts."""

from dataclasses import dataclass
from io import StringIO

import webvtt

UNKNOWN_SPEAKER = "Unknown Speaker"


@dataclass
class Utterance:
    """One caption cue."""

    speaker: str
    text: str
    start_time: float
    end_time: float


@dataclass
class ParsedTranscript:
    """Result of parsing a caption file."""

    utterances: list[Utterance]
    speakers: list[str]
    duration_seconds: float | None

    def to_text(self) -> str:
        """Render as `speaker: text` lines, merging consecutive cues by one speaker."""
        lines: list[tuple[str, str]] = []
        for utterance in self.utterances:
            text = " ".join(utterance.text.split())
            if not text:
                continue
            if lines and lines[-1][0] == utterance.speaker:
                lines[-1] = (utterance.speaker, f"{lines[-1][1]} {text}")
            else:
                lines.append((utterance.speaker, text))
        return "\n".join(f"{speaker}: {text}" for speaker, text in lines)


class TranscriptParser:
    """Parse VTT and SRT caption files."""

    SUPPORTED_FORMATS = {".vtt", ".srt"}

    def parse(self, content: str, format: str) -> ParsedTranscript:
        """Parse caption content.

        Args:
            content: Raw file content (UTF-8 decoded)
            format: File extension (".vtt" or ".srt")

        Raises:
            ValueError: If format is unsupported
            webvtt.errors.MalformedFileError: If content is malformed
        """
        if format not in self.SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported format: {format}")

        stripped = content.strip()
        if not stripped or stripped == "WEBVTT":
            return ParsedTranscript(utterances=[], speakers=[], duration_seconds=None)

        # webvtt expects "vtt" not ".vtt"
        captions = webvtt.from_buffer(StringIO(content), format=format.lstrip("."))

        utterances = [
            Utterance(
                speaker=caption.voice or UNKNOWN_SPEAKER,
                text=caption.text,
                start_time=caption.start_in_seconds,
                end_time=caption.end_in_seconds,
            )
            for caption in captions
        ]

        return ParsedTranscript(
            utterances=utterances,
            speakers=sorted({u.speaker for u in utterances}),
            duration_seconds=utterances[-1].end_time if utterances else None,
        )

    def to_transcript(self, content: str, format: str) -> str:
        """Parse and render straight to transcript text."""
        return self.parse(content, format).to_text()
