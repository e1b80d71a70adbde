"""Watchable key/value configuration storage backed by Redis."""
