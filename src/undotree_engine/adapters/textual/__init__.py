"""Textual host adapter: key dispatch controller and demo application."""

from .controller import BufferController, EditorUIHooks

__all__ = ["BufferController", "EditorUIHooks"]
