"""
Test suite for docx_composer.
"""
