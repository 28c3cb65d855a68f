"""Flask CLI commands for operating DineDesk."""
