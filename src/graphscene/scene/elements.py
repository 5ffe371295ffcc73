"""Retained-mode element tree the scene is built into.

Elements stand in for SVG groups: each has a tag, an ordered set of CSS
classes, attributes, inline style, optional text, children and event
handlers. Everything is observable from Python.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any


class Class:
    """CSS class names used by the scene."""

    class Node:
        CONTAINER = "nodes"
        GROUP = "node"
        SHAPE = "nodeshape"
        COLOR_TARGET = "nodecolortarget"
        LABEL = "nodelabel"
        BUTTON_CONTAINER = "buttoncontainer"
        BUTTON_CIRCLE = "buttoncircle"
        EXPAND_BUTTON = "expandbutton"
        COLLAPSE_BUTTON = "collapsebutton"

    class Edge:
        CONTAINER = "edges"
        GROUP = "edge"
        LINE = "edgeline"
        STRUCTURAL = "structural"
        CONTROL = "control"

    class Annotation:
        OUTBOX = "out-annotations"
        INBOX = "in-annotations"
        GROUP = "annotation"
        NODE = "annotation-node"
        EDGE = "annotation-edge"
        LABEL = "annotation-label"
        ELLIPSIS = "annotation-ellipsis"

    class Scene:
        GROUP = "scene"
        CORE = "core"
        INEXTRACT = "in-extract"
        OUTEXTRACT = "out-extract"

    class Subscene:
        GROUP = "subscene"

    OPNODE = "op"
    METANODE = "meta"
    SERIESNODE = "series"
    BRIDGENODE = "bridge"
    ELLIPSISNODE = "ellipsis"

    # Node state
    HIGHLIGHTED = "highlighted"
    SELECTED = "selected"
    EXTRACT = "extract"
    EXPANDED = "expanded"
    FADED = "faded"

    # Input tracing
    INPUT_HIGHLIGHT = "input-highlight"
    INPUT_HIGHLIGHT_SELECTED = "input-highlight-selected"
    INPUT_PARENT = "input-parent"
    INPUT_CHILD = "input-child"
    NON_INPUT = "non-input"
    INPUT_EDGE_HIGHLIGHT = "input-edge-highlight"
    NON_INPUT_EDGE_HIGHLIGHT = "non-input-edge-highlight"

    TRACE_CLASSES = (
        INPUT_HIGHLIGHT,
        NON_INPUT,
        INPUT_PARENT,
        INPUT_CHILD,
        INPUT_EDGE_HIGHLIGHT,
        NON_INPUT_EDGE_HIGHLIGHT,
        INPUT_HIGHLIGHT_SELECTED,
    )


Handler = Callable[..., Any]


class SceneElement:
    """A node of the element tree.

    Attributes:
        tag: Element kind ("g", "rect", "text", ...)
        attrs: Attribute values, e.g. ``data-name``
        style: Inline style properties, e.g. ``fill``
        text: Text content for text elements
        children: Child elements in paint order (last is on top)
        parent: Containing element, None for a detached or root element
        data: The datum bound by the builder (render info, annotation, edge info)
    """

    def __init__(self, tag: str, *classes: str) -> None:
        self.tag = tag
        self._classes: dict[str, None] = dict.fromkeys(classes)
        self.attrs: dict[str, Any] = {}
        self.style: dict[str, Any] = {}
        self.text: str | None = None
        self.children: list[SceneElement] = []
        self.parent: SceneElement | None = None
        self.data: Any = None
        self._handlers: dict[str, list[Handler]] = {}

    def __repr__(self) -> str:
        classes = ".".join(self._classes)
        name = self.attrs.get("data-name") or self.attrs.get("data-edge")
        suffix = f" {name!r}" if name else ""
        return f"<{self.tag}{'.' + classes if classes else ''}{suffix}>"

    # === Classes ===

    @property
    def classes(self) -> list[str]:
        return list(self._classes)

    def has_class(self, name: str) -> bool:
        return name in self._classes

    def set_classes(self, *names: str) -> SceneElement:
        """Replace every class with ``names``."""
        self._classes = dict.fromkeys(names)
        return self

    def classed(self, name: str, value: bool = True) -> SceneElement:
        """Add (value=True) or remove (value=False) a class."""
        if value:
            self._classes[name] = None
        else:
            self._classes.pop(name, None)
        return self

    # === Attributes ===

    def attr(self, name: str, value: Any) -> SceneElement:
        if value is None:
            self.attrs.pop(name, None)
        else:
            self.attrs[name] = value
        return self

    def get_attr(self, name: str, default: Any = None) -> Any:
        return self.attrs.get(name, default)

    def set_style(self, name: str, value: Any) -> SceneElement:
        if value is None:
            self.style.pop(name, None)
        else:
            self.style[name] = value
        return self

    # === Tree ===

    def append(self, tag: str | SceneElement, *classes: str) -> SceneElement:
        """Append a new child (or re-parent an existing element) as the last child."""
        child = tag if isinstance(tag, SceneElement) else SceneElement(tag, *classes)
        return self.insert(child)

    def insert(self, child: SceneElement, before: SceneElement | None = None) -> SceneElement:
        if child.parent is not None:
            child.parent.children.remove(child)
        if before is not None and before.parent is self:
            self.children.insert(self.children.index(before), child)
        else:
            self.children.append(child)
        child.parent = self
        return child

    def remove(self) -> None:
        """Detach from the parent. Descendants stay attached to this element."""
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def raise_to_top(self) -> SceneElement:
        """Move to the end of the parent's children so it paints last."""
        if self.parent is not None:
            self.parent.insert(self)
        return self

    def select_child(self, class_name: str) -> SceneElement | None:
        """First direct child having ``class_name``."""
        for child in self.children:
            if child.has_class(class_name):
                return child
        return None

    def select_children(self, class_name: str) -> list[SceneElement]:
        return [child for child in self.children if child.has_class(class_name)]

    def select_or_create_child(
        self,
        tag: str,
        class_name: str | None = None,
        before: SceneElement | None = None,
    ) -> SceneElement:
        """Return the first child with this tag and class, creating it if missing."""
        for child in self.children:
            if child.tag == tag and (class_name is None or child.has_class(class_name)):
                return child
        classes = (class_name,) if class_name else ()
        return self.insert(SceneElement(tag, *classes), before=before)

    def iter_descendants(self) -> Iterator[SceneElement]:
        """Depth-first, pre-order, excluding this element."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def select_all(self, class_name: str) -> list[SceneElement]:
        return [el for el in self.iter_descendants() if el.has_class(class_name)]

    # === Events ===

    def on(self, event: str, handler: Handler | None) -> SceneElement:
        """Set the handler for an event (None removes it)."""
        if handler is None:
            self._handlers.pop(event, None)
        else:
            self._handlers[event] = [handler]
        return self

    def handlers(self, event: str) -> list[Handler]:
        return list(self._handlers.get(event, ()))

    def dispatch(self, event: str, *args: Any) -> None:
        """Invoke this element's handlers for an event with the bound datum."""
        for handler in self.handlers(event):
            handler(self.data, *args)
