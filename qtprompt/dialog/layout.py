"""
Layout Compiler

Turns a normalized DialogSpec into an abstract node tree. The tree is
rendered into Qt widgets by the dialog builder; keeping it pure lets the
layout decisions be tested without a display.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .schema import (
    Alignment,
    Button,
    DialogSpec,
    MessagePosition,
    Prompt,
)

DEFAULT_TAB_TITLE = "General"


@dataclass
class PromptNode:
    """A single prompt as it will be placed."""
    prompt: Prompt
    collapsible: bool = False
    collapsed: bool = False
    message_position: MessagePosition = MessagePosition.TOP


@dataclass
class StackNode:
    """Plain vertical stack of prompts."""
    children: list[PromptNode] = field(default_factory=list)


@dataclass
class GroupNode:
    """Bordered group box, optionally collapsible."""
    title: str
    show_header: bool = True
    collapsible: bool = False
    collapsed: bool = False
    children: list[PromptNode] = field(default_factory=list)


ClusterNode = Union[StackNode, GroupNode]


@dataclass
class TabPageNode:
    title: str
    children: list[ClusterNode] = field(default_factory=list)


@dataclass
class TabsNode:
    pages: list[TabPageNode] = field(default_factory=list)


@dataclass
class ImageNode:
    source: str


@dataclass
class MessageNode:
    lines: list[str]
    alignment: Alignment = Alignment.LEFT


@dataclass
class GridNode:
    index: int  # 1-based grid instance number
    rows: list[Any] = field(default_factory=list)


@dataclass
class CommentNode:
    lines: list[str]


@dataclass
class CountdownNode:
    seconds: int


@dataclass
class ButtonRowNode:
    buttons: list[Button] = field(default_factory=list)


@dataclass
class RootNode:
    """Top of the tree; children are laid out top to bottom."""
    children: list[Any] = field(default_factory=list)


def _has_header(group: str) -> bool:
    # Keys like "1" or "--" only separate prompts, they have no title
    return any(ch.isalpha() for ch in group)


def _prompt_node(prompt: Prompt) -> PromptNode:
    """Collapsible prompts always put their message on top (in the header)."""
    if prompt.collapsible:
        return PromptNode(
            prompt=prompt,
            collapsible=True,
            collapsed=prompt.collapsed,
            message_position=MessagePosition.TOP,
        )
    return PromptNode(prompt=prompt, message_position=prompt.message_position)


def cluster_prompts(
    prompts: list[Prompt],
) -> dict[tuple[Optional[str], Optional[str]], list[Prompt]]:
    """
    Cluster prompts by (tab, group) in first-seen order.

    Returns:
        Insertion-ordered dict mapping (tab, group) to its prompts
    """
    clusters: dict[tuple[Optional[str], Optional[str]], list[Prompt]] = {}
    for prompt in prompts:
        key = (prompt.tab or None, prompt.group or None)
        clusters.setdefault(key, []).append(prompt)
    return clusters


def _cluster_node(group: Optional[str], prompts: list[Prompt], spec: DialogSpec) -> ClusterNode:
    children = [_prompt_node(p) for p in prompts]
    if group is None:
        return StackNode(children=children)
    show_header = _has_header(group)
    collapsible = spec.collapsible_groups and show_header
    return GroupNode(
        title=group if show_header else "",
        show_header=show_header,
        collapsible=collapsible,
        collapsed=collapsible and spec.collapsed_groups,
        children=children,
    )


def compile_prompts(spec: DialogSpec) -> list[Any]:
    """
    Build the prompt section: a single TabsNode when any prompt names a
    tab, else one cluster node per (tab, group) pair.
    """
    clusters = cluster_prompts(spec.prompts)
    if not clusters:
        return []

    uses_tabs = any(tab is not None for tab, _group in clusters)
    if not uses_tabs:
        return [_cluster_node(group, prompts, spec) for (_tab, group), prompts in clusters.items()]

    pages: dict[str, TabPageNode] = {}
    for (tab, group), prompts in clusters.items():
        title = tab if tab is not None else DEFAULT_TAB_TITLE
        page = pages.setdefault(title, TabPageNode(title=title))
        page.children.append(_cluster_node(group, prompts, spec))
    return [TabsNode(pages=list(pages.values()))]


def split_button_rows(buttons: list[Button], rows: int) -> list[ButtonRowNode]:
    """Distribute buttons left-to-right, ceil(total / rows) per row."""
    if not buttons:
        return []
    per_row = math.ceil(len(buttons) / max(1, rows))
    return [
        ButtonRowNode(buttons=buttons[i:i + per_row])
        for i in range(0, len(buttons), per_row)
    ]


def compile_layout(spec: DialogSpec) -> RootNode:
    """
    Compile a normalized DialogSpec into a layout tree.

    Order: image, message, prompt clusters, grids, comment, countdown,
    button rows.

    Args:
        spec: DialogSpec already passed through DialogSpecParser.normalize

    Returns:
        RootNode of the layout tree
    """
    root = RootNode()

    if spec.image:
        root.children.append(ImageNode(source=spec.image))

    if spec.message:
        root.children.append(MessageNode(lines=list(spec.message), alignment=spec.content_alignment))

    root.children.extend(compile_prompts(spec))

    for index, rows in enumerate(spec.grid_sequences(), start=1):
        root.children.append(GridNode(index=index, rows=rows))

    if spec.comment:
        root.children.append(CommentNode(lines=list(spec.comment)))

    if spec.timeout and spec.countdown:
        root.children.append(CountdownNode(seconds=spec.timeout))

    root.children.extend(split_button_rows(spec.buttons, spec.button_rows))
    return root


def outline(node: Any, depth: int = 0) -> list[str]:
    """Human-readable, indented description of a layout tree."""
    pad = "  " * depth
    if isinstance(node, RootNode):
        lines = [f"{pad}Dialog"]
        for child in node.children:
            lines.extend(outline(child, depth + 1))
        return lines
    if isinstance(node, TabsNode):
        lines = [f"{pad}Tabs"]
        for page in node.pages:
            lines.extend(outline(page, depth + 1))
        return lines
    if isinstance(node, TabPageNode):
        lines = [f"{pad}Tab '{node.title}'"]
        for child in node.children:
            lines.extend(outline(child, depth + 1))
        return lines
    if isinstance(node, GroupNode):
        flags = " collapsible" if node.collapsible else ""
        title = f"'{node.title}'" if node.show_header else "(no header)"
        lines = [f"{pad}Group {title}{flags}"]
        for child in node.children:
            lines.extend(outline(child, depth + 1))
        return lines
    if isinstance(node, StackNode):
        lines = [f"{pad}Stack"]
        for child in node.children:
            lines.extend(outline(child, depth + 1))
        return lines
    if isinstance(node, PromptNode):
        prompt = node.prompt
        kind = f"set:{prompt.show_set_as.value}" if prompt.is_choice else prompt.input_type.value
        flags = " collapsible" if node.collapsible else ""
        return [f"{pad}Prompt {prompt.name} [{kind}] {node.message_position.value}{flags}"]
    if isinstance(node, ImageNode):
        return [f"{pad}Image"]
    if isinstance(node, MessageNode):
        return [f"{pad}Message ({len(node.lines)} line(s))"]
    if isinstance(node, GridNode):
        return [f"{pad}Grid {node.index} ({len(node.rows)} row(s))"]
    if isinstance(node, CommentNode):
        return [f"{pad}Comment ({len(node.lines)} line(s))"]
    if isinstance(node, CountdownNode):
        return [f"{pad}Countdown {node.seconds}s"]
    if isinstance(node, ButtonRowNode):
        return [f"{pad}Buttons " + " | ".join(b.text for b in node.buttons)]
    raise TypeError(f"Unknown layout node: {node!r}")
