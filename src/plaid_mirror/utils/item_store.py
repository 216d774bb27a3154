"""Persistent store for linked items, their access tokens and aliases.

Tokens and aliases live as two JSON files in the data directory:

- ``tokens.json``: item ID → access token
- ``aliases.json``: alias → item ID

One ``ItemStore`` instance owns both maps for the lifetime of a command and is
passed explicitly to whatever needs it. All reads and writes go through an
internal lock so fetch threads can look up tokens while another thread holds
the store.
"""

import json
import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import StoreError, UnknownItemError

logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^\w+$")
ALL_ITEMS = "all"


@dataclass(frozen=True)
class ItemRef:
    """A linked item together with its alias, when it has one."""

    item_id: str
    alias: str | None = None

    def __str__(self) -> str:
        if self.alias:
            return f"{self.alias} ({self.item_id})"
        return self.item_id


def validate_alias(alias: str) -> str:
    """Ensure an alias only uses word characters.

    Raises:
        ValueError: If the alias is empty or has other characters
    """
    if not ALIAS_PATTERN.match(alias):
        raise ValueError("Valid characters: [0-9A-Za-z_]")
    return alias


class ItemStore:
    """Owns the token and alias maps and their on-disk representation."""

    TOKENS_FILE = "tokens.json"
    ALIASES_FILE = "aliases.json"

    def __init__(
        self,
        data_dir: Path,
        tokens: dict[str, str] | None = None,
        aliases: dict[str, str] | None = None,
    ):
        self.data_dir = data_dir
        self._tokens: dict[str, str] = dict(tokens or {})
        self._aliases: dict[str, str] = dict(aliases or {})
        self._lock = threading.RLock()

    @classmethod
    def load(cls, data_dir: Path) -> "ItemStore":
        """Load tokens and aliases from ``data_dir``.

        Missing files are treated as empty maps.
        """
        data_dir.mkdir(parents=True, exist_ok=True)
        tokens = _read_json(data_dir / cls.TOKENS_FILE)
        aliases = _read_json(data_dir / cls.ALIASES_FILE)
        logger.debug(f"Loaded {len(tokens)} tokens and {len(aliases)} aliases")
        return cls(data_dir, tokens=tokens, aliases=aliases)

    def save(self) -> None:
        """Write both maps back to the data directory."""
        with self._lock:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            _write_json(self.data_dir / self.TOKENS_FILE, self._tokens)
            _write_json(self.data_dir / self.ALIASES_FILE, self._aliases)

    def set_token(self, item_id: str, access_token: str) -> None:
        with self._lock:
            self._tokens[item_id] = access_token

    def token_for(self, item_id: str) -> str:
        """Get the access token for an item.

        Raises:
            UnknownItemError: If no token is stored for the item
        """
        with self._lock:
            token = self._tokens.get(item_id)
        if not token:
            raise UnknownItemError(
                f"No access token found for item ID `{item_id}`. "
                "Try re-linking your account with `plaid-mirror link`."
            )
        return token

    def has_token(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._tokens

    def alias_for(self, item_id: str) -> str | None:
        with self._lock:
            for alias, aliased_id in self._aliases.items():
                if aliased_id == item_id:
                    return alias
        return None

    def set_alias(self, item_id: str, alias: str) -> None:
        """Give a linked item a friendly name and persist it.

        An item has at most one alias; setting a new one replaces the old.

        Raises:
            UnknownItemError: If the item has no stored token
            ValueError: If the alias has invalid characters
        """
        validate_alias(alias)
        with self._lock:
            if item_id not in self._tokens:
                raise UnknownItemError(
                    f"No access token found for item ID `{item_id}`. "
                    "Try re-linking your account with `plaid-mirror link`."
                )
            previous = self.alias_for(item_id)
            if previous is not None:
                del self._aliases[previous]
            self._aliases[alias] = item_id
            self.save()
        logger.info(f"Aliased {item_id} to {alias}.")

    def resolve(self, item_or_alias: str) -> ItemRef:
        """Turn an alias or raw item ID into an ``ItemRef``.

        Raises:
            UnknownItemError: If neither an alias nor a known item matches
        """
        with self._lock:
            item_id = self._aliases.get(item_or_alias)
            if item_id is not None:
                return ItemRef(item_id=item_id, alias=item_or_alias)
            if item_or_alias in self._tokens:
                alias = self.alias_for(item_or_alias)
                return ItemRef(item_id=item_or_alias, alias=alias)
        raise UnknownItemError(f"Unknown alias or item ID: {item_or_alias}")

    def resolve_many(self, item_or_alias: str) -> list[ItemRef]:
        """Resolve ``"all"`` to every aliased item, or a single reference."""
        if item_or_alias == ALL_ITEMS:
            return self.aliased_items()
        return [self.resolve(item_or_alias)]

    def aliased_items(self) -> list[ItemRef]:
        with self._lock:
            return [
                ItemRef(item_id=item_id, alias=alias)
                for alias, item_id in sorted(self._aliases.items())
            ]

    def remove(self, item: ItemRef) -> None:
        """Forget an item's token and alias and persist the change."""
        with self._lock:
            self._tokens.pop(item.item_id, None)
            for alias in [a for a, i in self._aliases.items() if i == item.item_id]:
                del self._aliases[alias]
            self.save()

    def aliases(self) -> dict[str, str]:
        with self._lock:
            return dict(self._aliases)

    def tokens_by_display_name(self) -> dict[str, str]:
        """Access tokens keyed by alias where one exists, else by item ID."""
        with self._lock:
            return {
                (self.alias_for(item_id) or item_id): token
                for item_id, token in self._tokens.items()
            }


def _read_json(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise StoreError(f"Cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise StoreError(f"Expected a JSON object in {path}")
    return {str(k): str(v) for k, v in data.items()}


def _write_json(path: Path, data: dict[str, str]) -> None:
    """Replace ``path`` atomically with a file only the owner can read."""
    tmp = path.with_suffix(".tmp")
    tmp.unlink(missing_ok=True)
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(data, f, indent=2, sort_keys=True)
    tmp.replace(path)
