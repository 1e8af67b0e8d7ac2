"""Validation unit of a message catalog: one source message and its translation."""
import logging
import re
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger("messages_editor.entry")

ELLIPSIS = "…"

# Names follow the WebExtension i18n rules: ASCII letters, digits, "_" and "@".
PLACEHOLDER_TOKEN_REGEX = re.compile(r'\$([A-Za-z0-9_@]+)\$')


class EntryKind(Enum):
    """Selects the structural rules an entry is validated against."""
    PLAIN = "plain"
    PLACEHOLDER = "placeholder"


class EntryState(Enum):
    """Display state of an entry after its last validation."""
    UNVALIDATED = "unvalidated"
    UNTOUCHED = "untouched"
    VALID = "valid"
    VALID_BUT_UNCHANGED = "valid_but_unchanged"
    INVALID = "invalid"


def normalize_translation(text: Optional[str]) -> str:
    """
    Normalize user input before it is compared, validated or exported.

    Args:
        text: The raw translated text.

    Returns:
        The text with surrounding whitespace removed and "..." turned into an ellipsis.
    """
    if not text:
        return ''
    return text.strip().replace('...', ELLIPSIS)


def placeholder_token(name: str) -> str:
    return f"${name}$"


def _plain_errors(entry: "Entry") -> List[str]:
    return []


def _placeholder_errors(entry: "Entry") -> List[str]:
    translated = entry.translated_text
    errors = []
    for name in entry.placeholder_names:
        token = placeholder_token(name)
        if token not in translated:
            errors.append(f'Placeholder "{token}" not present')

    declared = set(entry.placeholder_names)
    seen = set()
    for match in PLACEHOLDER_TOKEN_REGEX.finditer(translated):
        token = match.group(0)
        if token in seen:
            continue
        seen.add(token)
        if match.group(1).upper() not in declared:
            errors.append(f'Placeholder "{token}" is invalid')
    return errors


_ERROR_RULES: Dict[EntryKind, Callable[["Entry"], List[str]]] = {
    EntryKind.PLAIN: _plain_errors,
    EntryKind.PLACEHOLDER: _placeholder_errors,
}


class Entry:
    """
    One localizable message plus its translation state.

    The kind decides which structural rules apply; the validation state
    machine is shared. Every validation run reports back through on_update,
    which a Catalog uses to schedule its aggregate recompute.
    """

    def __init__(
            self,
            entry_id: str,
            source: Mapping[str, Any],
            on_update: Optional[Callable[["Entry"], None]] = None
    ):
        self.id = entry_id
        self.source_message: str = source['message']
        self.description: Optional[str] = source.get('description')
        self.placeholders: Optional[Dict[str, Any]] = source.get('placeholders')
        self.kind = EntryKind.PLACEHOLDER if self.placeholders else EntryKind.PLAIN
        if self.kind is EntryKind.PLACEHOLDER:
            # dict.fromkeys keeps declaration order while dropping case duplicates
            self.placeholder_names: Tuple[str, ...] = tuple(
                dict.fromkeys(name.upper() for name in self.placeholders)
            )
        else:
            self.placeholder_names = ()
        self._on_update = on_update
        self._raw_translation = (source.get('messageTranslated') or '').strip()
        self.error_count = 0
        self.errors: List[str] = []
        self.state = EntryState.UNVALIDATED

    def __repr__(self) -> str:
        return f"Entry({self.id!r}, kind={self.kind.value}, state={self.state.value})"

    @property
    def translated_text(self) -> str:
        return normalize_translation(self._raw_translation)

    @translated_text.setter
    def translated_text(self, value: Optional[str]) -> None:
        self._raw_translation = value or ''
        self.validate()

    @property
    def is_translated(self) -> bool:
        return bool(self.translated_text)

    @property
    def is_unchanged(self) -> bool:
        return self.translated_text == self.source_message

    @property
    def diagnostic(self) -> str:
        """User-visible error text, empty unless the entry is invalid."""
        return "\n".join(self.errors)

    def compute_errors(self) -> List[str]:
        if not self.is_translated:
            return []
        return _ERROR_RULES[self.kind](self)

    def validate(self) -> EntryState:
        """
        Re-run the validation state machine and notify the owner.

        Returns:
            The new state of the entry.
        """
        if not self.is_translated:
            self.errors = []
            self.error_count = 0
            self.state = EntryState.UNTOUCHED
        else:
            self.errors = self.compute_errors()
            self.error_count = len(self.errors)
            if self.error_count:
                self.state = EntryState.INVALID
            elif self.is_unchanged:
                self.state = EntryState.VALID_BUT_UNCHANGED
            else:
                self.state = EntryState.VALID
        logger.debug("Validated '%s': %s (%d error(s))", self.id, self.state.value, self.error_count)
        if self._on_update is not None:
            self._on_update(self)
        return self.state

    def to_catalog_form(self) -> Dict[str, Any]:
        """Serialize the translation in messages.json form."""
        form: Dict[str, Any] = {'message': self.translated_text}
        if self.description is not None:
            form['description'] = self.description
        if self.placeholders:
            form['placeholders'] = self.placeholders
        return form
