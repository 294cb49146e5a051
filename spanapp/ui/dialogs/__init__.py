from .class_popover import ClassPopover
from .leave_dialog import LeaveDialog
from .open_project import OpenProjectDialog
from .settings import SettingsDialog

__all__ = [
    "ClassPopover",
    "LeaveDialog",
    "OpenProjectDialog",
    "SettingsDialog",
]
