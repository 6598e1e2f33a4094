from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .constants import CONFIG_DIR_ENV, KEY_FILE_NAME
from .errors import PersonaError
from .pathutil import atomic_write_bytes


CONFIG_FILE_NAME = "config.json"
PERSONAS_DIR_NAME = "personas"


@dataclass
class Persona:
    name: str
    keyPath: str
    publicKeyPath: str
    createdAt: str
    fingerprint: str


def default_config_dir() -> Path:
    env = os.environ.get(CONFIG_DIR_ENV)
    if env:
        return Path(env)
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA") or Path.home()) / "identikey"
    return Path.home() / ".config" / "identikey"


def _check_name(name: str) -> str:
    if not isinstance(name, str) or not name or name in (".", "..") or "/" in name or "\\" in name:
        raise PersonaError(f"Invalid persona name: {name!r}")
    return name


class PersonaManager:
    """Named key profiles stored in ``<config_dir>/config.json``.

    The first persona created becomes active. Deleting the active persona
    activates the first remaining one.
    """

    def __init__(self, config_dir: Union[str, Path, None] = None):
        self.config_dir = Path(config_dir) if config_dir is not None else default_config_dir()
        self.config_path = self.config_dir / CONFIG_FILE_NAME
        self.personas_dir = self.config_dir / PERSONAS_DIR_NAME

    def _load(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {"activePersona": "", "personas": {}}
        try:
            config = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersonaError(f"Failed to load config from {self.config_path}: {exc}") from exc
        if not isinstance(config, dict) or not isinstance(config.get("personas", {}), dict):
            raise PersonaError(f"Malformed config in {self.config_path}")
        config.setdefault("activePersona", "")
        config.setdefault("personas", {})
        return config

    def _save(self, config: Dict[str, Any]) -> None:
        data = json.dumps(config, indent=2).encode("utf-8")
        try:
            atomic_write_bytes(self.config_path, data, mode=0o600)
        except OSError as exc:
            raise PersonaError(f"Failed to save config to {self.config_path}: {exc}") from exc

    @staticmethod
    def _persona(obj: Dict[str, Any]) -> Persona:
        return Persona(
            name=obj.get("name", ""),
            keyPath=obj.get("keyPath", ""),
            publicKeyPath=obj.get("publicKeyPath", obj.get("keyPath", "")),
            createdAt=obj.get("createdAt", ""),
            fingerprint=obj.get("fingerprint", ""),
        )

    def list_personas(self) -> List[Persona]:
        return [self._persona(p) for p in self._load()["personas"].values()]

    def get_active_persona(self) -> Optional[Persona]:
        config = self._load()
        active = config["activePersona"]
        if not active or active not in config["personas"]:
            return None
        return self._persona(config["personas"][active])

    def set_active_persona(self, name: str) -> None:
        config = self._load()
        if name not in config["personas"]:
            available = ", ".join(config["personas"])
            raise PersonaError(f"Persona '{name}' not found. Available personas: {available}")
        config["activePersona"] = name
        self._save(config)

    def create_persona(self, name: str, key_path: Union[str, Path], fingerprint: str) -> Persona:
        _check_name(name)
        config = self._load()
        if name in config["personas"]:
            raise PersonaError(f"Persona '{name}' already exists")
        persona = Persona(
            name=name,
            keyPath=str(key_path),
            publicKeyPath=str(key_path),
            createdAt=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            fingerprint=fingerprint,
        )
        config["personas"][name] = asdict(persona)
        if len(config["personas"]) == 1:
            config["activePersona"] = name
        self._save(config)
        return persona

    def update_persona(self, name: str, key_path: Union[str, Path], fingerprint: str) -> Persona:
        """Point an existing persona at a new key file; ``createdAt`` is kept."""
        config = self._load()
        entry = config["personas"].get(name)
        if entry is None:
            raise PersonaError(f"Persona '{name}' not found")
        entry.update(keyPath=str(key_path), publicKeyPath=str(key_path), fingerprint=fingerprint)
        self._save(config)
        return self._persona(entry)

    def delete_persona(self, name: str) -> None:
        config = self._load()
        if name not in config["personas"]:
            raise PersonaError(f"Persona '{name}' not found")
        del config["personas"][name]
        if config["activePersona"] == name:
            remaining = list(config["personas"])
            config["activePersona"] = remaining[0] if remaining else ""
        self._save(config)

    def get_persona_key_path(self, name: Optional[str] = None) -> Path:
        config = self._load()
        persona_name = name or config["activePersona"]
        if not persona_name:
            raise PersonaError('No persona specified and no active persona set. Run "identikey keygen" first.')
        persona = config["personas"].get(persona_name)
        if persona is None:
            raise PersonaError(f"Persona '{persona_name}' not found")
        return Path(persona["keyPath"])

    def get_persona_dir(self, name: str) -> Path:
        return self.personas_dir / _check_name(name)

    def get_default_key_path(self, name: str) -> Path:
        return self.get_persona_dir(name) / KEY_FILE_NAME


__all__ = ["Persona", "PersonaManager", "default_config_dir"]
