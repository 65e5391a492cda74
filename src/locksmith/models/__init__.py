"""Data models shared by the network manager, API and CLI."""
