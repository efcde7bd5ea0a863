"""Per-session JDK selection through a symlink named after the session's context id."""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Mapping
from pathlib import Path

from jpre.config import JpreConfig
from jpre.core.errors import FilesystemError, ParseError
from jpre.core.java_version import JavaVersion, VersionKey, parse_key
from jpre.jdks.manager import JdkManager

logger = logging.getLogger(__name__)

CONTEXT_ID_ENV_VAR = "JPRE_CONTEXT_ID"


def get_context_id(environ: Mapping[str, str] | None = None) -> str:
    """``JPRE_CONTEXT_ID`` when set, otherwise the parent process id (the invoking shell)."""
    env = os.environ if environ is None else environ
    override = env.get(CONTEXT_ID_ENV_VAR)
    if override:
        return override
    return str(os.getppid())


class ContextBinding:
    def __init__(self, manager: JdkManager, context_root: str | Path, context_id: str) -> None:
        if not context_id or "/" in context_id or "\\" in context_id or context_id in {".", ".."}:
            raise ValueError(f"invalid context id: {context_id!r}")
        self.manager = manager
        self.context_root = Path(context_root)
        self.context_id = context_id

    @property
    def link_path(self) -> Path:
        return self.context_root / self.context_id

    def bind(self, config: JpreConfig, key: VersionKey) -> Path:
        """Point this context at ``key``, installing it first if needed."""
        jdk_path = self.manager.get_path(config, key)
        try:
            self.context_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError("Could not create context directory", self.context_root) from exc

        tmp_link = self.context_root / f".{self.context_id}.{uuid.uuid4().hex}.tmp"
        logger.debug("Linking %s -> %s", self.link_path, jdk_path)
        try:
            os.symlink(jdk_path, tmp_link, target_is_directory=True)
            os.replace(tmp_link, self.link_path)
        except OSError as exc:
            try:
                tmp_link.unlink()
            except FileNotFoundError:
                pass
            except OSError as cleanup_exc:
                logger.warning("Failed to clean up temporary link %s: %s", tmp_link, cleanup_exc)
            raise FilesystemError(f"Could not link context to {jdk_path}", self.link_path) from exc
        return jdk_path

    def target(self) -> Path | None:
        try:
            return Path(os.readlink(self.link_path))
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise FilesystemError("Could not read context link", self.link_path) from exc

    def current_key(self) -> VersionKey | None:
        target = self.target()
        if target is None:
            return None
        try:
            return parse_key(target.name)
        except ParseError:
            logger.debug("Context link %s points at unrecognised directory %s", self.link_path, target)
            return None

    def current(self) -> JavaVersion | None:
        """Full version of the JDK this context points at, or ``None`` when unbound or not installed."""
        key = self.current_key()
        if key is None:
            return None
        return self.manager.full_version_from_path(self.manager.jdk_path(key))

    def points_to(self, path: str | Path) -> bool:
        target = self.target()
        if target is None:
            return False
        return os.path.normpath(target) == os.path.normpath(Path(path))

    def clear(self) -> None:
        try:
            self.link_path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise FilesystemError("Could not remove context link", self.link_path) from exc
        logger.debug("Cleared context link %s", self.link_path)

    def clear_all_pointing_to(self, path: str | Path) -> list[str]:
        """Remove every context link under ``context_root`` that targets ``path``; returns the cleared ids."""
        wanted = os.path.normpath(Path(path))
        try:
            entries = list(self.context_root.iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise FilesystemError("Could not read context directory", self.context_root) from exc

        cleared: list[str] = []
        for entry in entries:
            if not entry.is_symlink():
                continue
            try:
                target = os.readlink(entry)
            except OSError as exc:
                raise FilesystemError("Could not read context link", entry) from exc
            if os.path.normpath(target) != wanted:
                continue
            try:
                entry.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise FilesystemError("Could not remove context link", entry) from exc
            cleared.append(entry.name)
        return cleared
