"""Peewee database layer used by the SQLITE state store."""
