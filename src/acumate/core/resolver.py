"""
View binding resolution.

Resolves markup binding names (``view.bind="Document"``) to the screen
property that declares them and to the view class that property points at.
Binding names match exactly; only backend name comparisons elsewhere are
case-insensitive.
"""

from collections.abc import Iterable, Mapping

from .ir import VIEW_KINDS, ClassInfo, ClassKind, PropertyInfo, PropertyKind, ViewResolution


def create_class_info_lookup(class_infos: Iterable[ClassInfo]) -> dict[str, ClassInfo]:
    """Build a name -> ClassInfo map; the first declaration of a name wins."""
    lookup: dict[str, ClassInfo] = {}
    for info in class_infos:
        lookup.setdefault(info.class_name, info)
    return lookup


def filter_screen_like_classes(class_infos: Iterable[ClassInfo]) -> list[ClassInfo]:
    """
    Keep classes that act as screens.

    A class is screen-like when its heritage reaches ``PXScreen``, or when it
    has no designated base but declares view members (an extension whose
    base could not be resolved).
    """
    screens: list[ClassInfo] = []
    for info in class_infos:
        if info.declared_kind == ClassKind.SCREEN:
            screens.append(info)
        elif info.declared_kind is None and any(p.is_view for p in info.properties.values()):
            screens.append(info)
    return screens


def collect_action_properties(screen_classes: Iterable[ClassInfo]) -> dict[str, PropertyInfo]:
    """Map action names declared on any screen class to their first declaration."""
    actions: dict[str, PropertyInfo] = {}
    for info in screen_classes:
        for name, prop in info.properties.items():
            if prop.kind == PropertyKind.ACTION:
                actions.setdefault(name, prop)
    return actions


def resolve_view_binding(
    binding_name: str | None,
    screen_classes: Iterable[ClassInfo],
    class_info_lookup: Mapping[str, ClassInfo],
) -> ViewResolution | None:
    """
    Resolve a binding name against screen classes.

    Args:
        binding_name: Property name used by the markup
        screen_classes: Screen-like classes in scope, searched in order
        class_info_lookup: All collected classes by name

    Returns:
        ViewResolution for the first view/viewCollection property named
        exactly ``binding_name``, or None when no screen declares it
    """
    if not binding_name:
        return None

    for screen in screen_classes:
        prop = screen.properties.get(binding_name)
        if prop is None or prop.kind not in VIEW_KINDS:
            continue
        view_class = None
        if prop.view_class_name:
            view_class = class_info_lookup.get(prop.view_class_name)
        return ViewResolution(property=prop, view_class=view_class, screen_class=screen.class_name)

    return None


class ViewResolver:
    """
    Memoizing resolver for one validation pass.

    Repeated bindings to the same view name are answered from a per-pass
    cache instead of scanning every screen class again.
    """

    def __init__(
        self, class_infos: Iterable[ClassInfo], relevant: Iterable[ClassInfo] | None = None
    ):
        all_classes = list(class_infos)
        self.lookup = create_class_info_lookup(all_classes)
        self.screen_classes = filter_screen_like_classes(
            all_classes if relevant is None else relevant
        )
        self.actions = collect_action_properties(self.screen_classes)
        self._cache: dict[str, ViewResolution | None] = {}

    @property
    def has_screen_metadata(self) -> bool:
        return bool(self.screen_classes)

    def resolve(self, binding_name: str | None) -> ViewResolution | None:
        if not binding_name:
            return None
        if binding_name not in self._cache:
            self._cache[binding_name] = resolve_view_binding(
                binding_name, self.screen_classes, self.lookup
            )
        return self._cache[binding_name]
