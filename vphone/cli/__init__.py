"""CLI package exports for top-level command entry points."""

from __future__ import annotations

from .main import VPhoneModalCLI, main

__all__ = ['VPhoneModalCLI', 'main']
