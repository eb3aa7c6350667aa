"""
Source property collector for AcuMate screen TypeScript.

Builds ``ClassInfo`` records from TypeScript files: each class's declared
members classified by kind, with inherited members merged in across files.
Base classes are resolved through the file's relative imports, re-parsing
the defining module on demand. Parsed modules are memoized per normalized
path and modification time in a ``SourceFileCache``.
"""

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .errors import ParseError
from .ir import VIEW_KINDS, ClassInfo, ClassKind, PropertyInfo, PropertyKind
from .ts_parser import (
    CallInitializer,
    ClassDecl,
    MemberDecl,
    SourceModule,
    TypeReference,
    is_relative_specifier,
    parse_source,
)

logger = logging.getLogger(__name__)

# Declared type name -> member kind
TYPE_KIND_TABLE: dict[str, PropertyKind] = {
    "PXActionState": PropertyKind.ACTION,
    "PXFieldState": PropertyKind.FIELD,
    "PXView": PropertyKind.VIEW,
    "PXViewCollection": PropertyKind.VIEW_COLLECTION,
}

# Factory call in an initializer -> member kind
FACTORY_KIND_TABLE: dict[str, PropertyKind] = {
    "createSingle": PropertyKind.VIEW,
    "createCollection": PropertyKind.VIEW_COLLECTION,
}

BASE_KINDS: dict[str, ClassKind] = {kind.value: kind for kind in ClassKind}

# Suffixes tried, in order, when resolving a relative module specifier
MODULE_PROBES = ("", ".ts", ".tsx", ".d.ts", "/index.ts")

# Decorator names, compared case-insensitively
GRAPH_INFO_DECORATOR = "graphinfo"
FEATURE_INSTALLED_DECORATOR = "featureinstalled"
LINK_COMMAND_DECORATOR = "linkcommand"


def classify_member(
    type_ref: TypeReference | None, initializer: CallInitializer | None
) -> tuple[PropertyKind, str | None]:
    """
    Decide a member's kind and nested view class.

    The declared type name wins; a ``createSingle``/``createCollection``
    initializer whose first argument is a class identifier is the fallback.
    For view kinds the generic argument (``PXView<X>``) or the factory
    argument names the view class.

    Returns:
        (kind, view class name or None)
    """
    factory_kind: PropertyKind | None = None
    factory_class: str | None = None
    if initializer is not None and initializer.callee in FACTORY_KIND_TABLE:
        if initializer.arguments and initializer.arguments[0]:
            factory_kind = FACTORY_KIND_TABLE[initializer.callee]
            factory_class = initializer.arguments[0]

    if type_ref is not None and type_ref.name in TYPE_KIND_TABLE:
        kind = TYPE_KIND_TABLE[type_ref.name]
        if kind not in VIEW_KINDS:
            return kind, None
        if type_ref.arguments and type_ref.arguments[0]:
            return kind, type_ref.arguments[0]
        return kind, factory_class

    if factory_kind is not None:
        return factory_kind, factory_class

    return PropertyKind.UNKNOWN, None


def resolve_module_path(from_file: Path, specifier: str) -> Path | None:
    """Resolve a relative module specifier against the importing file."""
    if not is_relative_specifier(specifier):
        return None
    base = os.path.normpath(os.path.join(os.path.dirname(from_file), specifier))
    for probe in MODULE_PROBES:
        candidate = Path(base + probe) if probe != "/index.ts" else Path(base) / "index.ts"
        if candidate.is_file():
            return candidate
    return None


@dataclass
class _CacheEntry:
    mtime: float | None
    text: str
    module: SourceModule | None


class SourceFileCache:
    """
    Parsed-module cache keyed by normalized absolute path.

    An entry is reused while the file's modification time (or, for
    in-memory text, the text itself) is unchanged. Files that fail to read
    or parse are cached as ``None`` too.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _CacheEntry] = {}

    @staticmethod
    def key_for(path: str | Path) -> str:
        return os.path.normcase(os.path.abspath(path))

    def load(self, path: str | Path, text: str | None = None) -> SourceModule | None:
        """
        Return the parsed module for ``path``.

        Args:
            path: File path
            text: In-memory contents; read from disk when None
        """
        key = self.key_for(path)
        entry = self._entries.get(key)

        if text is not None:
            if entry is not None and entry.mtime is None and entry.text == text:
                return entry.module
            mtime = None
        else:
            try:
                mtime = os.stat(key).st_mtime
            except OSError as e:
                logger.debug("Cannot stat %s: %s", path, e)
                return None
            if entry is not None and entry.mtime == mtime:
                return entry.module
            try:
                text = Path(key).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Cannot read %s: %s", path, e)
                return None

        try:
            module: SourceModule | None = parse_source(text, Path(key))
        except ParseError as e:
            logger.debug("Cannot parse %s: %s", path, e)
            module = None

        self._entries[key] = _CacheEntry(mtime=mtime, text=text, module=module)
        return module

    def invalidate(self, path: str | Path | None = None) -> None:
        if path is None:
            self._entries.clear()
        else:
            self._entries.pop(self.key_for(path), None)

    def __len__(self) -> int:
        return len(self._entries)


class SourcePropertyCollector:
    """
    Collects ``ClassInfo`` records from screen TypeScript files.

    Every resolution call carries the originating module explicitly; the
    only shared state is the parse cache.
    """

    def __init__(self, cache: SourceFileCache | None = None):
        self.cache = cache or SourceFileCache()

    def load_module(self, file_path: str | Path, text: str | None = None) -> SourceModule | None:
        return self.cache.load(file_path, text)

    def collect(self, file_content: str | None, file_path: str | Path) -> list[ClassInfo]:
        """
        Collect every class reachable from a file.

        Classes declared in the file come first, followed by classes of
        relatively-imported modules, each file visited at most once.

        Args:
            file_content: In-memory text of ``file_path``, or None to read it
            file_path: Path of the file

        Returns:
            ClassInfo list; empty when the file cannot be read or parsed
        """
        module = self.cache.load(file_path, file_content)
        if module is None:
            return []

        results: list[ClassInfo] = []
        self._collect_module(module, set(), results)
        return results

    def _collect_module(
        self, module: SourceModule, visited_files: set[str], results: list[ClassInfo]
    ) -> None:
        key = SourceFileCache.key_for(module.path)
        if key in visited_files:
            return
        visited_files.add(key)

        for decl in module.classes:
            results.append(self.build_class_info(decl, module))

        for specifier in module.relative_specifiers:
            target = resolve_module_path(module.path, specifier)
            if target is None:
                continue
            imported = self.cache.load(target)
            if imported is not None:
                self._collect_module(imported, visited_files, results)

    def build_class_info(self, decl: ClassDecl, module: SourceModule) -> ClassInfo:
        """Build the flattened ClassInfo for one declaration."""
        properties, declared_kind = self._flatten(decl, module, set())

        graph_type: str | None = None
        features: list[str] = []
        for decorator in decl.decorators:
            if decorator.name.lower() == GRAPH_INFO_DECORATOR and graph_type is None:
                literal = decorator.properties.get("graphType")
                if literal is not None:
                    graph_type = literal.value
            elif decorator.name.lower() == FEATURE_INSTALLED_DECORATOR:
                features.extend(arg.value for arg in decorator.arguments if arg.value)

        return ClassInfo(
            class_name=decl.name,
            declared_kind=declared_kind,
            properties=properties,
            source_path=module.path,
            start=decl.start,
            end=decl.end,
            line=decl.line - 1,
            graph_type=graph_type,
            features=features,
        )

    def _flatten(
        self,
        decl: ClassDecl,
        module: SourceModule,
        visited: set[tuple[str, str]],
    ) -> tuple[dict[str, PropertyInfo], ClassKind | None]:
        # Keyed by file and declared name; import aliases may rename a base.
        visited.add((SourceFileCache.key_for(module.path), decl.name))
        properties: dict[str, PropertyInfo] = {}
        declared_kind: ClassKind | None = None

        for base_name in decl.heritage + module.interface_heritage(decl.name):
            simple_name = base_name.rsplit(".", 1)[-1]
            if simple_name in BASE_KINDS:
                declared_kind = declared_kind or BASE_KINDS[simple_name]
                continue

            resolved = self.resolve_class(base_name, module)
            if resolved is None:
                logger.debug("Base class %s of %s not resolved", base_name, decl.name)
                continue

            base_decl, base_module = resolved
            if (SourceFileCache.key_for(base_module.path), base_decl.name) in visited:
                continue
            base_properties, base_kind = self._flatten(base_decl, base_module, visited)
            for name, prop in base_properties.items():
                properties.setdefault(name, prop)
            declared_kind = declared_kind or base_kind

        for member in decl.members:
            properties[member.name] = self._property_info(member, decl, module)

        return properties, declared_kind

    def _property_info(
        self, member: MemberDecl, decl: ClassDecl, module: SourceModule
    ) -> PropertyInfo:
        kind, view_class_name = classify_member(member.type_ref, member.initializer)

        link_command: str | None = None
        for decorator in member.decorators:
            if decorator.name.lower() == LINK_COMMAND_DECORATOR and decorator.arguments:
                link_command = decorator.arguments[0].value
                break

        return PropertyInfo(
            name=member.name,
            kind=kind,
            type_name=member.type_ref.name if member.type_ref else None,
            view_class_name=view_class_name,
            declaring_class=decl.name,
            source_path=module.path,
            start=member.start,
            end=member.end,
            line=member.line - 1,
            link_command=link_command,
        )

    # ------------------------------------------------------------------
    # Cross-file name resolution
    # ------------------------------------------------------------------

    def resolve_class(
        self, name: str, module: SourceModule
    ) -> tuple[ClassDecl, SourceModule] | None:
        """
        Resolve a class name used in ``module`` to its declaration.

        Order: the module itself, explicit import bindings (named, default,
        namespace), the module's re-exports, then any relatively-imported
        module. Non-relative imports are never followed.
        """
        if "." in name:
            namespace, _, simple_name = name.rpartition(".")
            for imp in module.imports:
                for binding in imp.bindings:
                    if binding.imported == "*" and binding.local == namespace:
                        target = self._load_relative(module, imp.specifier)
                        if target is not None:
                            return self._find_exported(target, simple_name, set())
            return None

        decl = module.find_class(name)
        if decl is not None:
            return decl, module

        for imp in module.imports:
            for binding in imp.bindings:
                if binding.local != name or binding.imported == "*":
                    continue
                target = self._load_relative(module, imp.specifier)
                if target is None:
                    continue
                if binding.imported == "default":
                    default = target.default_class()
                    if default is not None:
                        return default, target
                    return self._find_exported(target, name, set())
                return self._find_exported(target, binding.imported, set())

        for re_export in module.re_exports:
            target = self._load_relative(module, re_export.specifier)
            if target is None:
                continue
            found = self._find_exported(target, name, set())
            if found is not None:
                return found

        for specifier in module.relative_specifiers:
            target = self._load_relative(module, specifier)
            if target is None:
                continue
            found = self._find_exported(target, name, set())
            if found is not None:
                return found

        return None

    def _find_exported(
        self, module: SourceModule, name: str, seen: set[str]
    ) -> tuple[ClassDecl, SourceModule] | None:
        key = SourceFileCache.key_for(module.path)
        if key in seen:
            return None
        seen.add(key)

        decl = module.find_class(name)
        if decl is not None:
            return decl, module

        for re_export in module.re_exports:
            if re_export.names is None:
                original = name
            elif re_export.names.get(name, "*") != "*":
                original = re_export.names[name]
            else:
                continue
            target = self._load_relative(module, re_export.specifier)
            if target is None:
                continue
            found = self._find_exported(target, original, seen)
            if found is not None:
                return found
        return None

    def _load_relative(self, module: SourceModule, specifier: str) -> SourceModule | None:
        target = resolve_module_path(module.path, specifier)
        if target is None:
            return None
        return self.cache.load(target)


def collect(
    file_content: str | None, file_path: str | Path, cache: SourceFileCache | None = None
) -> list[ClassInfo]:
    """
    Convenience function to collect classes reachable from one file.

    Args:
        file_content: In-memory text, or None to read from disk
        file_path: Path of the file
        cache: Parse cache to share between calls

    Returns:
        ClassInfo list (empty when the file cannot be read or parsed)
    """
    return SourcePropertyCollector(cache).collect(file_content, file_path)


def collect_from_files(
    paths: Iterable[str | Path], collector: SourcePropertyCollector | None = None
) -> list[ClassInfo]:
    """Collect classes from several files, dropping repeats of the same declaration."""
    collector = collector or SourcePropertyCollector()
    seen: set[tuple[str, str]] = set()
    results: list[ClassInfo] = []
    for path in paths:
        for info in collector.collect(None, path):
            key = (SourceFileCache.key_for(info.source_path or path), info.class_name)
            if key in seen:
                continue
            seen.add(key)
            results.append(info)
    return results


def filter_classes_by_source(
    class_infos: Iterable[ClassInfo], paths: Iterable[str | Path]
) -> list[ClassInfo]:
    """Keep only classes declared in one of ``paths``."""
    keys = {SourceFileCache.key_for(path) for path in paths}
    return [
        info
        for info in class_infos
        if info.source_path is not None and SourceFileCache.key_for(info.source_path) in keys
    ]
