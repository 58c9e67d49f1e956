"""
Speech Synthesis and Audio Staging.

This package provides:
    - voices.py: Voice and speed reference tables
    - speech.py: Speech provider client and factory
    - storage.py: Temp file store for generated audio
"""
