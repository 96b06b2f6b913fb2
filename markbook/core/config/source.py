"""
Settings sources for markbook.

Configuration is a directory of YAML files, one per top-level section
(``storage.yaml``, ``grading.yaml``, ...). Files under ``env.d/<env>/`` refine
the root files key by key, and ``-o section.key=value`` overrides from the
command line are applied last.
"""

import functools
import typing as t
from pathlib import Path

import pydantic as p
import yaml
from pydantic_settings import PydanticBaseSettingsSource, SettingsError

import markbook.lib.util as util
from markbook.model import DeploymentEnvironment


class SettingsState(t.TypedDict):
    root: p.AnyUrl
    env: DeploymentEnvironment
    override: tuple[str, ...]


class SettingsSource(PydanticBaseSettingsSource):
    @property
    def state(self) -> SettingsState:
        return t.cast(SettingsState, self.current_state)

    def __call__(self) -> dict[str, t.Any]:
        data: dict[str, t.Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            try:
                value, key, is_complex = self.get_field_value(field, field_name)
                data[key] = self.prepare_field_value(field_name, field, value, is_complex)
            except KeyError:
                continue
            except (ValueError, yaml.YAMLError) as e:
                raise SettingsError(f"error reading {field_name!r} from {self!r}") from e
        return data

    def prepare_field_value(self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool):
        return value


class OverrideSettingsSource(SettingsSource):
    """
    Applies dotted ``key=value`` overrides, values parsed as YAML scalars.

    Must be ordered ahead of the YAML source, earlier sources take precedence
    when the section dicts are merged.
    """

    _reserved: t.ClassVar[frozenset[str]] = frozenset({"env", "root", "override"})

    @functools.cached_property
    def parsed_options(self) -> dict[str, t.Any]:
        parsed: dict[str, t.Any] = {}
        for option in self.state["override"]:
            if "=" not in option:
                raise SettingsError(f"override {option!r} must have the form key=value")
            k, v = (s.strip() for s in option.split("=", 1))
            *path, leaf = k.split(".")
            target = parsed
            for part in path:
                target = target.setdefault(part, {})
            target[leaf] = yaml.safe_load(v)
        return parsed

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in self._reserved or field_name not in self.parsed_options:
            raise KeyError(field_name)
        return self.parsed_options[field_name], field_name, False


class YAMLCascadingSettingsSource(SettingsSource):
    @functools.cached_property
    def load_paths(self) -> list[Path]:
        root = self.state["root"]
        if root.scheme != "file" or root.path is None:
            raise SettingsError(f"config root {root} is not a local directory")
        env = self.state["env"]
        paths = [Path(root.path)]
        # local runs read the root directory only
        if env is not DeploymentEnvironment.Local:
            paths.append(Path(root.path) / "env.d" / env.value)
        return paths

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        files = [path / f"{field_name}.yaml" for path in self.load_paths]
        docs = [fn.read_text(encoding="utf8") for fn in files if fn.exists()]
        if not docs:
            raise KeyError(field_name)
        return docs, field_name, True

    def prepare_field_value(self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool):
        merged: dict[str, t.Any] = {}
        for doc in t.cast(list[str], value):
            loaded = yaml.safe_load(doc)
            if loaded is None:
                continue
            if not isinstance(loaded, dict):
                return loaded
            merged = util.deep_update(merged, t.cast(dict[str, t.Any], loaded))
        return merged
