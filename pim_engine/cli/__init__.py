"""
Command line interface for the PIM Engine.
"""
