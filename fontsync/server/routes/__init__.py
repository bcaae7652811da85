"""
FontSync Server - Routes Package

One router module per endpoint group.
"""
