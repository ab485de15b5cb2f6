"""
Publishers package
"""
