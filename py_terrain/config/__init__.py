"""
Configuration modules for terrain generation and editing.
"""

from .brush_presets import get_preset, list_presets, PRESETS
from .config import settings, Settings
from .editor_settings import EditorSettings, get_editor_settings, validate_edit_operation

__all__ = ['get_preset', 'list_presets', 'PRESETS', 'settings', 'Settings',
           'EditorSettings', 'get_editor_settings', 'validate_edit_operation']
