"""Per-template display defaults.

When a resolution run has no ready thumbnail slot, the result's display
image falls back to the template default (an asset class and/or a fixed URL
managed by admins).
"""

from pydantic import BaseModel


class TemplateDefault(BaseModel):
    template_type: str
    default_display_image_class: str | None = None
    default_display_image_url: str | None = None


class TemplateDefaults:
    """Lookup of :class:`TemplateDefault` rows by template type."""

    def __init__(self, rows: list[TemplateDefault] | None = None) -> None:
        self._rows = {row.template_type.lower(): row for row in rows or []}

    @classmethod
    def from_payload(cls, payload: list[dict]) -> "TemplateDefaults":
        return cls([TemplateDefault.model_validate(row) for row in payload])

    def get(self, template_type: str) -> TemplateDefault | None:
        return self._rows.get(template_type.lower())
