"""Render surfaces the playback driver draws onto."""

from .surface import ConsoleSurface, RecordingSurface, RenderSurface

__all__ = ["ConsoleSurface", "RecordingSurface", "RenderSurface"]
