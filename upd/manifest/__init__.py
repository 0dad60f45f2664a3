"""Manifest model — parse, inventory and structure-preserving patching."""
