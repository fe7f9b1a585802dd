"""Core library code for dictionary seeding."""
