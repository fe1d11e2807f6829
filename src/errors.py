"""Exceptions raised while synchronizing module translations."""
from typing import List, Optional


class TranslatorError(Exception):
    """Base class for every error the translator reports as fatal."""


class DecodingError(TranslatorError):
    """Structured text could not be parsed."""

    def __init__(self, text: str, message: str, format_name: str = 'json', path: Optional[str] = None):
        self.text = text
        self.message = message
        self.format_name = format_name
        self.path = path
        super().__init__(self._describe())

    def _describe(self) -> str:
        description = f"Error {self.format_name} decoding {self.text}: {self.message}"
        if self.path:
            description = f"{description} (file '{self.path}')"
        return description

    def with_path(self, path: str) -> 'DecodingError':
        return DecodingError(self.text, self.message, self.format_name, path)


class EncodingError(TranslatorError):
    """A tree holds a value that cannot be written in the target format."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        if path:
            message = f"{message} (file '{path}')"
        super().__init__(message)

    def with_path(self, path: str) -> 'EncodingError':
        return EncodingError(self.message, path)


class ExternalProcessError(TranslatorError):
    """An external command or remote request failed."""

    def __init__(
            self,
            command: List[str],
            message: str,
            returncode: Optional[int] = None,
            output: Optional[str] = None,
            cwd: Optional[str] = None
    ):
        self.command = command
        self.returncode = returncode
        self.output = output
        self.cwd = cwd
        details = f"'{' '.join(command)}' failed: {message}"
        if cwd:
            details += f" (in '{cwd}')"
        if returncode is not None:
            details += f" [exit code {returncode}]"
        if output:
            details += f"\n{output}"
        super().__init__(details)


class ModuleResolutionError(TranslatorError):
    """A configured module cannot be processed."""
