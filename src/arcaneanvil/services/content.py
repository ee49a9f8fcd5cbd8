from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from arcaneanvil.engine.types import EnchantmentCatalog, EnchantmentDefinition


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def _load_schema(path: Path) -> object:
    return _load_json(path)


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_enchantments(self) -> EnchantmentCatalog:
        path = self._data_dir / "enchantments.json"
        schema = _load_schema(self._schema_dir / "enchantments.schema.json")
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))

        if not isinstance(raw, dict):
            raise ContentError("enchantments.json must be an object")
        raw_items = raw.get("enchantments")
        if not isinstance(raw_items, list):
            raise ContentError("enchantments.json.enchantments must be a list")

        out: dict[str, EnchantmentDefinition] = {}
        for item in raw_items:
            if not isinstance(item, dict):
                continue
            definition = EnchantmentDefinition(
                id=_require_str(item, "id"),
                kind=_require_str(item, "kind"),  # type: ignore[arg-type]
                name=_require_str(item, "name"),
                description=_require_str(item, "description"),
                cost=_require_int(item, "cost"),
                rarity=_require_str(item, "rarity"),  # type: ignore[arg-type]
            )
            if definition.id in out:
                raise ContentError(f"Duplicate enchantment id: {definition.id}")
            out[definition.id] = definition
        return EnchantmentCatalog(enchantments=out)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_enchantments()
