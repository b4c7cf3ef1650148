"""Errors raised by the template engine."""


class TemplateError(ValueError):
    """Fatal template error: bad block structure, unknown helper, render failure.

    Rendering is atomic, so this always means no output was produced.
    """

    pass


class MissingHelperError(TemplateError):
    """A helper was called (or used as a block) but is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Missing helper: "{name}"')
        self.name = name
