"""Reusable patterns for building dashboard verticals.

Each module demonstrates a self-contained pattern that can be adapted
to any domain: rules engines, workflow state machines and domain
configuration.
"""
