"""
study_engine: study-content generation with quota-gated LLM access, an
offline pattern-extraction fallback and SM-2 review scheduling.
"""

__version__ = '0.1.0'
