"""ProfileStore — owns conversion profiles and the active selection.

The store is constructed once at start-up and handed by reference to the
pipeline and to any editing surface.  Callers always receive copies of
profiles; changes go through :meth:`ProfileStore.update_profile` so built-in
tables cannot be mutated by accident.

Persisted document (``profiles.json``)::

    {
      "version": 1,
      "profiles": [{"id": ..., "name": ..., "editable": ..., "mapping": {...}}],
      "active_profile_id": "builtin-russian"
    }

Older versions stored a single flat mapping under ``custom_symbols`` (or the
whole file was that mapping); it is migrated into an editable ``Custom``
profile on load and the legacy entry is dropped.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Union

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.errors import ProfileNotEditable, ProfileNotFound
from textswitch.profiles.maps import BUILTIN_TABLES, DEFAULT_PROFILE_ID
from textswitch.profiles.persistence import load_json, move_aside, save_json
from textswitch.utils.text import is_single_cluster

logger = logging.getLogger(__name__)

STORE_VERSION = 1
LEGACY_KEY = "custom_symbols"
LEGACY_PROFILE_NAME = "Custom"
BACKUP_SUFFIX = ".bak"
_DOCUMENT_KEYS = {"version", "profiles", "active_profile_id", LEGACY_KEY}

_COPY_SUFFIX = re.compile(r" \(copy(?: \d+)?\)$")


@dataclass
class ConversionProfile:
    id: str
    name: str
    mapping: dict[str, str] = field(default_factory=dict)
    is_editable: bool = True

    def copy(self) -> "ConversionProfile":
        return ConversionProfile(self.id, self.name, dict(self.mapping), self.is_editable)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "editable": self.is_editable,
            "mapping": dict(self.mapping),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ConversionProfile":
        """Build a profile from its persisted form. Raises ``ValueError``."""
        if not isinstance(data, dict):
            raise ValueError("profile entry must be an object")
        pid = data.get("id")
        name = data.get("name")
        if not isinstance(pid, str) or not pid:
            raise ValueError(f"invalid profile id: {pid!r}")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"invalid profile name: {name!r}")
        editable = data.get("editable", True)
        if not isinstance(editable, bool):
            raise ValueError(f"invalid 'editable' flag for {pid}")
        return cls(pid, name.strip(), validate_mapping(data.get("mapping", {})), editable)


def validate_mapping(mapping) -> dict[str, str]:
    """Check that *mapping* is single-character keys to non-empty strings.

    Returns a plain ``dict`` copy.  Raises ``ValueError`` on the first bad entry.
    """
    if not isinstance(mapping, Mapping):
        raise ValueError("mapping must be an object of character → string")
    out: dict[str, str] = {}
    for src, dst in mapping.items():
        if not isinstance(src, str) or not is_single_cluster(src):
            raise ValueError(f"mapping key must be a single character: {src!r}")
        if not isinstance(dst, str) or not dst:
            raise ValueError(f"mapping value for {src!r} must be a non-empty string")
        out[src] = dst
    return out


def build_inverse(mapping: Mapping[str, str]) -> dict[str, str]:
    """Target → source for every entry; on collision the last entry wins."""
    return {dst: src for src, dst in mapping.items()}


ProfileRef = Union[ConversionProfile, str]


class ProfileStore:
    """Named mapping tables, the active profile and its derived inverse.

    *path* of ``None`` keeps the store in memory only (nothing is persisted).
    """

    def __init__(self, path: str | None = None):
        self._path = path
        self._lock = threading.RLock()
        self._profiles: dict[str, ConversionProfile] = {}
        self._active_id: str | None = None
        self._backup_pending = False
        self._tables: tuple[Mapping[str, str], Mapping[str, str]] = (
            MappingProxyType({}), MappingProxyType({}),
        )

    # ------------------------------------------------------------------
    # Loading / saving
    # ------------------------------------------------------------------

    @classmethod
    def open(cls, path: str | None = None) -> "ProfileStore":
        """Create a store and load it (built-ins on first run)."""
        store = cls(path)
        store.load()
        return store

    def load(self) -> None:
        """Read the persisted document, migrate legacy data, resolve the active profile.

        A document that cannot be parsed, or whose entries had to be
        discarded, is left on disk untouched: the store runs on what could be
        recovered (built-ins at worst) and the file is moved to
        ``<path>.bak`` before the first save.
        """
        doc, intact = self._read_document()

        dirty = False
        legacy = None
        if doc and not (_DOCUMENT_KEYS & doc.keys()):
            if all(isinstance(v, str) for v in doc.values()):
                # The whole file is a pre-profile flat mapping
                legacy = doc
            else:
                logger.warning("Unrecognised profile store layout in %s", self._path)
                intact = False
            doc = {}
        elif isinstance(doc.get(LEGACY_KEY), dict):
            legacy = doc.pop(LEGACY_KEY)
        elif LEGACY_KEY in doc:
            doc.pop(LEGACY_KEY)
            dirty = True

        with self._lock:
            self._profiles = {}
            if "profiles" in doc:
                if not self._load_profiles(doc.get("profiles")):
                    intact = False
            else:
                for pid, name, mapping in BUILTIN_TABLES:
                    self._profiles[pid] = ConversionProfile(pid, name, dict(mapping), False)
                logger.info("Created %d built-in profiles", len(BUILTIN_TABLES))
                dirty = True

            persisted_active = doc.get("active_profile_id")
            if legacy is not None:
                migrated = self._migrate_legacy(legacy)
                if migrated is not None:
                    persisted_active = migrated.id
                dirty = True

            self._active_id = self._resolve_active(persisted_active)
            if self._active_id != persisted_active:
                dirty = True
            self._rebuild_tables()
            self._backup_pending = not intact

        if self._backup_pending:
            logger.warning(
                "Profile store %s left unchanged; it will be moved to %s%s before the next save",
                self._path, self._path, BACKUP_SUFFIX,
            )
        elif dirty:
            self.save()

    def _read_document(self) -> tuple[dict, bool]:
        """Return ``(document, intact)``; a missing file is an intact empty document."""
        if not self._path:
            return {}, True
        try:
            doc = load_json(self._path)
        except FileNotFoundError:
            return {}, True
        except (OSError, ValueError) as exc:
            logger.warning("Cannot parse profile store %s: %s", self._path, exc)
            return {}, False
        if not isinstance(doc, dict):
            logger.warning("Profile store %s is not an object", self._path)
            return {}, False
        return doc, True

    def _load_profiles(self, entries) -> bool:
        """Load profile entries; returns False if any had to be skipped."""
        builtin = {pid: mapping for pid, _name, mapping in BUILTIN_TABLES}
        if not isinstance(entries, list):
            logger.warning("Ignoring malformed 'profiles' entry in %s", self._path)
            return False
        intact = True
        for entry in entries:
            try:
                profile = ConversionProfile.from_dict(entry)
            except ValueError as exc:
                logger.warning("Skipping invalid profile in %s: %s", self._path, exc)
                intact = False
                continue
            if profile.id in self._profiles:
                logger.warning("Skipping duplicate profile id %s", profile.id)
                intact = False
                continue
            if not profile.is_editable and profile.id in builtin:
                # Built-in tables always come from the shipped maps
                profile.mapping = dict(builtin[profile.id])
            self._profiles[profile.id] = profile
        return intact

    def _migrate_legacy(self, legacy: dict) -> ConversionProfile | None:
        mapping: dict[str, str] = {}
        for src, dst in legacy.items():
            try:
                mapping.update(validate_mapping({src: dst}))
            except ValueError as exc:
                logger.warning("Dropping legacy mapping entry: %s", exc)
        if not mapping:
            logger.info("Legacy mapping was empty; nothing to migrate")
            return None
        profile = ConversionProfile(
            uuid.uuid4().hex, self._unique_name(LEGACY_PROFILE_NAME), mapping, True,
        )
        self._profiles[profile.id] = profile
        logger.info("Migrated legacy mapping (%d entries) into profile %r", len(mapping), profile.name)
        return profile

    def _resolve_active(self, candidate) -> str | None:
        for pid in (candidate, DEFAULT_PROFILE_ID):
            if isinstance(pid, str) and pid in self._profiles:
                return pid
        return next(iter(self._profiles), None)

    def save(self) -> None:
        """Persist all profiles and the active id (no-op for in-memory stores)."""
        if not self._path:
            return
        if self._backup_pending:
            backup = move_aside(self._path, BACKUP_SUFFIX)
            if backup is not None:
                logger.warning("Previous profile store moved to %s", backup)
            self._backup_pending = False
        with self._lock:
            doc = {
                "version": STORE_VERSION,
                "profiles": [p.to_dict() for p in self._profiles.values()],
                "active_profile_id": self._active_id,
            }
        save_json(self._path, doc)
        logger.trace("Profile store saved to %s", self._path)  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def profiles(self) -> list[ConversionProfile]:
        with self._lock:
            return [p.copy() for p in self._profiles.values()]

    @property
    def active_profile_id(self) -> str | None:
        return self._active_id

    @property
    def active_profile(self) -> ConversionProfile | None:
        with self._lock:
            if self._active_id is None:
                return None
            return self._profiles[self._active_id].copy()

    @property
    def inverse_mapping(self) -> Mapping[str, str]:
        return self._tables[1]

    def get_profile(self, profile_id: str) -> ConversionProfile:
        with self._lock:
            return self._require(profile_id).copy()

    def active_tables(self) -> tuple[Mapping[str, str], Mapping[str, str]]:
        """Return the (forward, inverse) tables of the active profile.

        The pair is replaced as a whole on every change, so a caller holding
        it sees one consistent profile even if another thread switches.
        """
        return self._tables

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_active_profile(self, profile_id: str) -> None:
        with self._lock:
            self._require(profile_id)
            self._active_id = profile_id
            self._rebuild_tables()
        logger.info("Active profile: %s", profile_id)
        self.save()

    def create_profile(self, name: str, based_on: ProfileRef | None = None) -> ConversionProfile:
        """Create an editable profile, optionally copying another profile's mapping."""
        if not isinstance(name, str) or not name.strip():
            raise ValueError("profile name must be a non-empty string")
        with self._lock:
            mapping: dict[str, str] = {}
            if based_on is not None:
                mapping = dict(self._require(self._ref_id(based_on)).mapping)
            profile = ConversionProfile(uuid.uuid4().hex, self._unique_name(name.strip()), mapping, True)
            self._profiles[profile.id] = profile
            if self._active_id is None:
                self._active_id = profile.id
                self._rebuild_tables()
        logger.info("Created profile %r (%s)", profile.name, profile.id)
        self.save()
        return profile.copy()

    def duplicate_profile(self, existing: ProfileRef) -> ConversionProfile:
        """Editable copy named ``"<name> (copy)"``, ``"<name> (copy 2)"``, …"""
        with self._lock:
            source = self._require(self._ref_id(existing))
            base = _COPY_SUFFIX.sub("", source.name)
            profile = ConversionProfile(uuid.uuid4().hex, self._copy_name(base), dict(source.mapping), True)
            self._profiles[profile.id] = profile
        logger.info("Duplicated %r as %r", source.name, profile.name)
        self.save()
        return profile.copy()

    def delete_profile(self, profile_id: str) -> None:
        with self._lock:
            removed = self._require(profile_id)
            del self._profiles[profile_id]
            if self._active_id == profile_id:
                self._active_id = next(iter(self._profiles), None)
                self._rebuild_tables()
                logger.info("Deleted active profile; now active: %s", self._active_id)
        logger.info("Deleted profile %r (%s)", removed.name, profile_id)
        self.save()

    def update_profile(self, profile: ConversionProfile) -> None:
        """Replace name and mapping of an editable profile."""
        with self._lock:
            stored = self._require(profile.id)
            if not stored.is_editable:
                raise ProfileNotEditable(stored.id, stored.name)
            if not isinstance(profile.name, str) or not profile.name.strip():
                raise ValueError("profile name must be a non-empty string")
            mapping = validate_mapping(profile.mapping)
            self._profiles[profile.id] = ConversionProfile(profile.id, profile.name.strip(), mapping, True)
            if profile.id == self._active_id:
                self._rebuild_tables()
        logger.info("Updated profile %r (%d entries)", profile.name, len(mapping))
        self.save()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, profile_id: str) -> ConversionProfile:
        try:
            return self._profiles[profile_id]
        except (KeyError, TypeError):
            raise ProfileNotFound(profile_id) from None

    @staticmethod
    def _ref_id(ref: ProfileRef) -> str:
        return ref.id if isinstance(ref, ConversionProfile) else ref

    def _rebuild_tables(self) -> None:
        if self._active_id is None:
            forward: dict[str, str] = {}
        else:
            forward = dict(self._profiles[self._active_id].mapping)
        self._tables = (MappingProxyType(forward), MappingProxyType(build_inverse(forward)))

    def _names(self) -> set[str]:
        return {p.name for p in self._profiles.values()}

    def _copy_name(self, base: str) -> str:
        names = self._names()
        candidate = f"{base} (copy)"
        n = 2
        while candidate in names:
            candidate = f"{base} (copy {n})"
            n += 1
        return candidate

    def _unique_name(self, name: str) -> str:
        return name if name not in self._names() else self._copy_name(name)
