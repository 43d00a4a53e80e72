"""
Mind Map

A derived, never-cached tree of folder and file names under the long-term
memory root. It is rendered as XML for model prompts:

    <mind-map>
      <folder name="projects">
        <file name="apollo.md" />
      </folder>
    </mind-map>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List

INDEX_PREFIX = "_index"


def is_hidden_entry(name: str) -> bool:
    """Index files and dot files never appear in listings or the mind map."""
    return name.startswith(INDEX_PREFIX) or name.startswith(".")


@dataclass
class MindMapNode:
    """A folder (with children) or a file leaf."""

    name: str
    is_folder: bool = False
    children: List["MindMapNode"] = field(default_factory=list)

    def iter_files(self, prefix: str = "") -> Iterator[str]:
        """Yield relative POSIX paths of every file below this node."""
        for child in self.children:
            path = f"{prefix}{child.name}"
            if child.is_folder:
                yield from child.iter_files(f"{path}/")
            else:
                yield path

    def to_element(self) -> ET.Element:
        if not self.is_folder:
            return ET.Element("file", {"name": self.name})
        element = ET.Element("folder", {"name": self.name})
        for child in self.children:
            element.append(child.to_element())
        return element


@dataclass
class MindMap:
    """Root of the tree. ``exists`` is false when the LTM root is missing."""

    children: List[MindMapNode] = field(default_factory=list)
    exists: bool = True

    @property
    def is_empty(self) -> bool:
        return not any(True for _ in self.iter_files())

    def iter_files(self) -> Iterator[str]:
        for child in self.children:
            if child.is_folder:
                yield from child.iter_files(f"{child.name}/")
            else:
                yield child.name

    def files(self) -> List[str]:
        return list(self.iter_files())

    def to_xml(self) -> str:
        root = ET.Element("mind-map")
        for child in self.children:
            root.append(child.to_element())
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="unicode")

    def __str__(self) -> str:
        return self.to_xml()


def _build_nodes(directory: Path) -> List[MindMapNode]:
    nodes: List[MindMapNode] = []
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if is_hidden_entry(entry.name):
            continue
        if entry.is_dir():
            nodes.append(MindMapNode(entry.name, is_folder=True, children=_build_nodes(entry)))
        elif entry.is_file():
            nodes.append(MindMapNode(entry.name))
    return nodes


def build_mind_map(root: Path) -> MindMap:
    """Walk ``root`` and build its mind map."""
    if not root.is_dir():
        return MindMap(exists=False)
    return MindMap(children=_build_nodes(root))
