# # Generator registry: page renderers are looked up by the layout's "generator" key.

from __future__ import annotations

from typing import TYPE_CHECKING

from ..registry import Registry

if TYPE_CHECKING:
    from .base import BaseGenerator

GENERATORS: "Registry[BaseGenerator]" = Registry("generator")

register_generator = GENERATORS.register
get_generator = GENERATORS.get
