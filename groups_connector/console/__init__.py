"""Operator console for the groups connector."""

from groups_connector.console.menu import ConsoleApp, ConsoleSession, MenuChoice, main

__all__ = ["ConsoleApp", "ConsoleSession", "MenuChoice", "main"]
