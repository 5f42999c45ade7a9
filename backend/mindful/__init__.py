"""
Mindful Companion - Backend Application Package

This package contains the conversation session engine and its hosts:
- Crisis classification, message log, payload windowing, session orchestration
- Assistant transport services (HTTP and offline dummy)
- REST API exposing session state and commands to the UI
"""

__version__ = "0.1.0"
