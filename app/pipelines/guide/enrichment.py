"""Screenshot mapping stage."""

from __future__ import annotations

from typing import Optional, Sequence

from app.config.settings import settings
from app.domain.models import Guide


def step_placeholder(step_number: int, template: str | None = None) -> str:
    """Placeholder image reference for the 1-based ``step_number``."""

    return (template or settings.pipeline.step_placeholder_template).format(number=step_number)


def attach_screenshots(
    guide: Guide,
    screenshots: Sequence[Optional[str]],
    *,
    placeholder_template: str | None = None,
) -> Guide:
    """Return a copy of ``guide`` where step *i* shows ``screenshots[i]``.

    Steps without a usable screenshot get a placeholder naming their step
    number. The input guide is left untouched, so repeated calls agree.
    """

    steps = []
    for position, step in enumerate(guide.steps):
        screenshot = screenshots[position] if position < len(screenshots) else None
        steps.append(
            step.model_copy(
                update={
                    "screenshot_url": screenshot
                    or step_placeholder(position + 1, placeholder_template)
                }
            )
        )
    return guide.model_copy(update={"steps": steps})


__all__ = ["attach_screenshots", "step_placeholder"]
