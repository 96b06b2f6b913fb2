"""Thin layer over dependency_injector wiring used throughout markbook."""

from __future__ import annotations

__all__ = [
    "Container",
    "Manage",
    "NotReady",
    "Provider",
    "Provide",
    "as_",
    "inject",
    "providers",
    "containers",
    "register_loader_containers",
]

import functools
import importlib.machinery
import sys
import types
import typing as t

import dependency_injector.containers as containers
import dependency_injector.providers as providers
import dependency_injector.wiring as wiring
from dependency_injector.containers import Container
from dependency_injector.providers import Provider
from dependency_injector.wiring import ClassGetItemMeta, Closing, Provide, TypeModifier

P = t.ParamSpec("P")
TReturn = t.TypeVar("TReturn")
T = t.TypeVar("T")


def inject(fn: t.Callable[P, TReturn]) -> t.Callable[P, TReturn]:
    injections, closing = wiring._fetch_reference_injections(fn)  # pyright: ignore [reportPrivateUsage]
    patched = wiring._get_patched(fn, injections, closing)  # pyright: ignore [reportPrivateUsage]

    # fastapi resolves annotations against the handler's globals
    if fn.__module__.startswith("markbook.web") and hasattr(fn, "__globals__"):
        return functools.wraps(fn, updated=("__globals__",))(patched)
    return patched


class Manage(object, metaclass=ClassGetItemMeta):
    """Provide a resource and close it once the injected call returns."""

    def __new__(cls, provider: Provider[T] | Container | str):
        return Closing[Provide[provider]]

    @classmethod
    def __class_getitem__(cls, item: Provider[T] | Container | str):
        return cls(item)


def as_(type_: t.Type[T]) -> TypeModifier:
    return TypeModifier(type_)


class NotReady(object):
    """Placeholder for container values that are only known after boot."""

    _instance: t.ClassVar[NotReady | None] = None

    def __new__(cls) -> NotReady:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "<NotReady>"


class WiringLoader(object):
    """
    Import hook which wires containers into modules of the registered
    packages as they are loaded, so that command and route modules imported
    after boot still receive their providers
    """

    def __init__(self) -> None:
        self.containers: dict[str, list[Container]] = {}
        self._hook: t.Callable[..., t.Any] | None = None

    def register(self, *cts: Container, packages: t.Sequence[str]) -> None:
        for package in packages:
            self.containers.setdefault(package, []).extend(cts)
        if self._hook is None:
            self.install()

    def wire_module(self, module: types.ModuleType) -> None:
        for package, cts in self.containers.items():
            if module.__name__ == package or module.__name__.startswith(f"{package}."):
                for ct in cts:
                    ct.wire(modules=[module])

    def install(self) -> None:
        loader = self

        class SourceFileLoader(importlib.machinery.SourceFileLoader):
            def exec_module(self, module: types.ModuleType):
                super().exec_module(module)
                loader.wire_module(module)

        class SourcelessFileLoader(importlib.machinery.SourcelessFileLoader):
            def exec_module(self, module: types.ModuleType):
                super().exec_module(module)
                loader.wire_module(module)

        self._hook = importlib.machinery.FileFinder.path_hook(
            (importlib.machinery.ExtensionFileLoader, importlib.machinery.EXTENSION_SUFFIXES),
            (SourceFileLoader, importlib.machinery.SOURCE_SUFFIXES),
            (SourcelessFileLoader, importlib.machinery.BYTECODE_SUFFIXES),
        )
        sys.path_hooks.insert(0, self._hook)
        sys.path_importer_cache.clear()
        importlib.invalidate_caches()


_loader = WiringLoader()


def register_loader_containers(*cts: Container, packages: t.Sequence[str]) -> None:
    _loader.register(*cts, packages=packages)
