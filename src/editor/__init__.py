"""Editor workflow: form state, slug checks, autosave, and the drawer shell."""

from sitecms.editor.autosave import AutosaveScheduler, SaveStatus
from sitecms.editor.debounce import Debouncer
from sitecms.editor.drawer import DrawerState, EditorDrawer
from sitecms.editor.form import FormState
from sitecms.editor.notify import Notification, Notifier
from sitecms.editor.uniqueness import SlugCheck, SlugUniquenessChecker

__all__ = [
    "AutosaveScheduler",
    "Debouncer",
    "DrawerState",
    "EditorDrawer",
    "FormState",
    "Notification",
    "Notifier",
    "SaveStatus",
    "SlugCheck",
    "SlugUniquenessChecker",
]
