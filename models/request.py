"""TemplateRequest: what the caller asks the slot resolver to fill."""

from pydantic import BaseModel, ConfigDict, field_validator


class InvalidTemplateRequest(ValueError):
    """A request the resolver refuses to run (the only fatal resolver error)."""


class TemplateRequest(BaseModel):
    """One personalized-video instantiation request.

    ``child_name`` and ``template_type`` are mandatory.  ``target_letter`` and
    ``theme`` are optional here; the slot schema decides whether the template
    needs them (see :meth:`app.models.slot_schema.TemplateSchema.validate_request`).
    """

    model_config = ConfigDict(frozen=True)

    child_name: str
    template_type: str
    target_letter: str | None = None
    theme: str | None = None

    @field_validator("child_name", "template_type")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("template_type")
    @classmethod
    def _lower_template(cls, v: str) -> str:
        return v.lower()

    @field_validator("target_letter")
    @classmethod
    def _single_letter(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip().upper()
        if len(v) != 1 or not v.isalpha():
            raise ValueError(f"target_letter must be a single letter, got {v!r}")
        return v

    @field_validator("theme")
    @classmethod
    def _blank_theme_is_none(cls, v: str | None) -> str | None:
        return v.strip() if v and v.strip() else None

    @property
    def name_letters(self) -> list[str]:
        """Letters of the child's name in order, duplicates kept (upper-case)."""
        return [c for c in self.child_name.upper() if c.isalpha()]

    @property
    def unique_name_letters(self) -> list[str]:
        """Distinct name letters in order of first appearance."""
        seen: list[str] = []
        for c in self.name_letters:
            if c not in seen:
                seen.append(c)
        return seen
