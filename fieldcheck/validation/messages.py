"""Error Messages

Process-wide template table keyed by rule name. Templates use two
placeholders:

- ``:field``  the field's display label (itself passed through the translator)
- ``:params`` the rule's parameters, comma separated, value excluded

The engine only selects a template and assembles substitutions; the
Translator collaborator produces the final text.

Extending:
    from fieldcheck.validation import messages
    messages.register_message("even", ":field must be an even number")
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .collaborators import Translator

DEFAULT_KEY = "default"

DEFAULT_MESSAGES: dict[str, str] = {
    "default": ":field value is invalid",
    "not_empty": ":field must not be empty",
    "matches": ":field must be the same as :params",
    "regex": ":field does not match the required format",
    "exact_length": ":field must be exactly :params characters long",
    "min_length": ":field must be at least :params characters long",
    "max_length": ":field must be less than :params characters long",
    "in_array": ":field must be of the these options: :params",
    "email": ":field does not match the required format",
    "email_domain": ":field must use a domain that accepts mail",
    "url": ":field must be a valid URL",
    "ip": ":field must be a valid IP address",
    "credit_card": ":field must be a valid credit card number",
    "phone": ":field must be a valid phone number",
    "date": ":field must be a date",
    "alpha": ":field must contain only letters",
    "alpha_numeric": ":field must contain only letters and numbers",
    "alpha_dash": ":field must contain only letters, numbers, dashes and underscores",
    "digit": ":field must be a digit",
    "numeric": ":field must be numeric",
    "decimal": ":field must be a decimal with :params places",
    "range": ":field must be within the range of :params",
    "color": ":field must be a color",
}


class MessageTable:
    """Mutable mapping of rule name to template, with a required "default"."""

    def __init__(self, templates: Mapping[str, str] = DEFAULT_MESSAGES):
        self._initial = dict(templates)
        if DEFAULT_KEY not in self._initial:
            raise ValueError('Message table needs a "default" template')
        self._templates = dict(self._initial)

    def register(self, rule: str, template: str) -> None:
        self._templates[rule] = template

    def template_for(self, rule: str) -> tuple[str, str]:
        """(key actually used, template); unknown rules fall back to "default"."""
        if rule in self._templates:
            return rule, self._templates[rule]
        return DEFAULT_KEY, self._templates[DEFAULT_KEY]

    def snapshot(self) -> dict[str, str]:
        return dict(self._templates)

    def reset(self) -> None:
        self._templates = dict(self._initial)

    def __contains__(self, rule: object) -> bool:
        return rule in self._templates


MESSAGES = MessageTable()


def register_message(rule: str, template: str) -> None:
    MESSAGES.register(rule, template)


def message_templates() -> dict[str, str]:
    return MESSAGES.snapshot()


def reset_messages() -> None:
    MESSAGES.reset()


def render_params(params: Sequence[Any]) -> str:
    """Comma-join parameters; nested sequences are flattened the same way."""
    return ", ".join(_render(p) for p in params)


def _render(param: Any) -> str:
    if isinstance(param, bool):
        return "true" if param else "false"
    if param is None:
        return ""
    if isinstance(param, (list, tuple, set, frozenset)):
        return render_params(list(param))
    if isinstance(param, Mapping):
        return render_params(list(param.values()))
    return str(param)


@dataclass(frozen=True, slots=True)
class MessageSpec:
    """Template selection plus placeholder values, ready for a Translator."""
    key: str
    template: str
    label: str
    params: str

    def substitutions(self, translated_label: str) -> dict[str, str]:
        return {":field": translated_label, ":params": self.params}

    def render(self, translator: Translator) -> str:
        return translator.translate(self.template, self.substitutions(translator.translate(self.label)))


def build_message(rule: str, label: str, params: Sequence[Any], table: MessageTable = MESSAGES) -> MessageSpec:
    key, template = table.template_for(rule)
    return MessageSpec(key=key, template=template, label=label, params=render_params(params))
