# # Widget registry: layouts refer to widgets by key.

from __future__ import annotations

from typing import TYPE_CHECKING

from ..registry import Registry

if TYPE_CHECKING:
    from .base import BaseWidget

WIDGETS: "Registry[BaseWidget]" = Registry("widget")

register_widget = WIDGETS.register
get_widget = WIDGETS.get
