"""A validation problem described in the style of JSON:API error objects."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ValidationErrorSource:
    """Where an error came from: a JSON pointer or a parameter name."""

    pointer: str = ""
    parameter: str = ""


@dataclass
class ValidationError(Exception):
    """A problem with a request, meant to be reported back to the client."""

    id: str = ""
    status: int = 0
    code: str = ""
    title: str = ""
    detail: str = ""
    source: ValidationErrorSource | None = None

    def __str__(self) -> str:
        parts = [
            f"[{self.status or ''}]",
            f"[{self.code}]",
            f"[{self.id}] ",
        ]
        if self.title:
            parts.append(f"{self.title} ")
        if self.detail:
            parts.append(f"| {self.detail} ")
        if self.source is not None:
            if self.source.parameter:
                location = f"parameter={self.source.parameter}"
            elif self.source.pointer:
                location = f"pointer={self.source.pointer}"
            else:
                location = ""
            parts.append(f"[source {location}]")
        return "".join(parts)

    def status_code(self) -> int:
        """Return the HTTP status to answer with."""
        return self.status