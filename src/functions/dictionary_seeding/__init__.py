"""
Dictionary Seeding Module

Turns the prioritized ``seed_queue`` backlog into quality-checked dictionary
entries using an LLM backend, under a shared daily token budget. Failed items
are classified and either re-armed for retry or demoted to a dead-letter
queue by the recovery service.

This module is independent and can be deleted without affecting other modules.
"""

__version__ = "1.0.0"
