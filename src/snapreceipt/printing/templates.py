"""Print templates.

Each template fixes the character width of the thermal layout, the
divider character and how many blank lines are fed around each section.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class TemplateId(Enum):
    """Available print templates."""

    CLASSIC = "classic"
    COMPACT = "compact"
    KITCHEN = "kitchen"


@dataclass(frozen=True)
class TemplateParams:
    """Layout parameters for one template."""

    template_id: TemplateId
    line_width: int
    divider_char: str
    feed_lines_before_items: int = 0
    feed_lines_after_items: int = 0
    feed_lines_before_totals: int = 1
    feed_lines_after_totals: int = 0
    feed_lines_before_footer: int = 1
    feed_lines_after_footer: int = 3

    @property
    def divider(self) -> str:
        return self.divider_char * self.line_width

    @property
    def short_divider(self) -> str:
        """Divider printed above the totals block."""
        return self.divider_char * min(self.line_width, 24)


_TEMPLATES = {
    TemplateId.CLASSIC: TemplateParams(
        template_id=TemplateId.CLASSIC,
        line_width=42,
        divider_char="=",
        feed_lines_before_items=0,
        feed_lines_after_items=0,
        feed_lines_before_totals=1,
        feed_lines_after_totals=0,
        feed_lines_before_footer=1,
        feed_lines_after_footer=3,
    ),
    TemplateId.COMPACT: TemplateParams(
        template_id=TemplateId.COMPACT,
        line_width=40,
        divider_char="-",
        feed_lines_before_items=0,
        feed_lines_after_items=0,
        feed_lines_before_totals=1,
        feed_lines_after_totals=1,
        feed_lines_before_footer=1,
        feed_lines_after_footer=2,
    ),
    TemplateId.KITCHEN: TemplateParams(
        template_id=TemplateId.KITCHEN,
        line_width=44,
        divider_char="=",
        feed_lines_before_items=1,
        feed_lines_after_items=1,
        feed_lines_before_totals=2,
        feed_lines_after_totals=1,
        feed_lines_before_footer=2,
        feed_lines_after_footer=3,
    ),
}


def resolve_template(template: Optional[Union[str, TemplateId]] = None) -> TemplateParams:
    """Get layout parameters for a template id.

    Unknown or missing ids fall back to the classic template.
    """
    if isinstance(template, TemplateId):
        return _TEMPLATES[template]

    key = (template or "").strip().lower()
    for template_id in TemplateId:
        if template_id.value == key:
            return _TEMPLATES[template_id]
    return _TEMPLATES[TemplateId.CLASSIC]
