"""Study set generation, classification and persistence service."""

__version__ = '1.0.0'
