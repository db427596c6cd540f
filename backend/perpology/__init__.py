"""Perpology: AI crypto-futures chat backend and client controller."""
