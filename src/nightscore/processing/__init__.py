"""This is the processing submodule.

This module contains the sleep pipeline itself: normalizing raw stage
segments, clustering them into episodes, building episode statistics,
selecting the primary episode of each night, and scoring.
"""
