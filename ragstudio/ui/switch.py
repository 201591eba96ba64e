"""Switch — a stateless on/off control rendered as an accessible HTML button.

The caller owns ``checked``. Activating the switch only reports the proposed
new value through ``on_checked_change``; the switch never flips itself.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from html import escape

BASE_CLASSES = (
    "peer inline-flex h-6 w-11 shrink-0 cursor-pointer items-center rounded-full "
    "border-2 border-transparent transition-colors focus-visible:outline-none "
    "focus-visible:ring-2 focus-visible:ring-blue-500 focus-visible:ring-offset-2 "
    "disabled:cursor-not-allowed disabled:opacity-50 "
    "data-[state=checked]:bg-blue-600 data-[state=unchecked]:bg-gray-200"
)
THUMB_CLASSES = (
    "pointer-events-none block h-5 w-5 rounded-full bg-white shadow-lg ring-0 "
    "transition-transform data-[state=checked]:translate-x-5 "
    "data-[state=unchecked]:translate-x-0"
)


@dataclass(frozen=True)
class SwitchOptions:
    """Decorative and form attributes accepted by the switch."""

    element_id: str | None = None
    name: str | None = None
    class_name: str | None = None
    aria_label: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class Switch:
    checked: bool = False
    on_checked_change: Callable[[bool], None] | None = None
    disabled: bool = False
    options: SwitchOptions = SwitchOptions()

    @property
    def state(self) -> str:
        return "checked" if self.checked else "unchecked"

    def attributes(self) -> dict[str, str | None]:
        """Button attributes in render order; None marks a boolean attribute."""
        attrs: dict[str, str | None] = {
            "type": "button",
            "role": "switch",
            "aria-checked": "true" if self.checked else "false",
            "data-state": self.state,
        }
        if self.disabled:
            attrs["disabled"] = None

        opts = self.options
        classes = BASE_CLASSES if not opts.class_name else f"{BASE_CLASSES} {opts.class_name}"
        attrs["class"] = classes
        if opts.element_id:
            attrs["id"] = opts.element_id
        if opts.name:
            attrs["name"] = opts.name
        if opts.aria_label:
            attrs["aria-label"] = opts.aria_label
        if opts.title:
            attrs["title"] = opts.title
        return attrs

    def render(self) -> str:
        parts = []
        for key, value in self.attributes().items():
            if value is None:
                parts.append(key)
            else:
                parts.append(f'{key}="{escape(value, quote=True)}"')
        thumb = f'<span data-state="{self.state}" class="{THUMB_CLASSES}"></span>'
        return f"<button {' '.join(parts)}>{thumb}</button>"

    def activate(self) -> None:
        """Handle a click: report ``not checked`` unless disabled."""
        if self.disabled or self.on_checked_change is None:
            return
        self.on_checked_change(not self.checked)
