from typing import List, Optional


class LayoutError(Exception):
    """Base class for errors raised by the layout generation and export core."""


class UnknownChannel(LayoutError, KeyError):
    def __init__(self, channel_id: str) -> None:
        self.channel_id = channel_id
        super().__init__(f"Unknown channel: {channel_id}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return self.args[0]


# Raised by the composer when asked for a channel the registry lacks.
UnsupportedChannel = UnknownChannel


class UnsupportedFileFormat(LayoutError):
    def __init__(self, file_format: str) -> None:
        self.file_format = file_format
        super().__init__(f"Unsupported format: {file_format}")


class ExternalJudgmentUnavailable(LayoutError):
    """
    The external judgment (LLM, policy engine, ...) could not produce a usable
    answer. Scorers recover from this locally with a fallback score.
    """


class InvalidExportConfiguration(LayoutError):
    def __init__(self, problems: List[str]) -> None:
        self.problems = list(problems)
        super().__init__("Invalid export configuration: " + "; ".join(self.problems))


class UnknownPreset(LayoutError, KeyError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown export preset: {name}")

    def __str__(self) -> str:
        return self.args[0]


class RequestFormatError(LayoutError, ValueError):
    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)
