"""
Services module for the BLANG editor
Contains the merge engine, patch file handling and editing sessions
"""
