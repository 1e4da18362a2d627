"""
Test suite for the conversation memory manager.
"""
