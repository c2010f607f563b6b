"""Shared helpers: logging setup and JSON argument decoding"""
