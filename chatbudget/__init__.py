"""
chatbudget - context budget and compaction engine for LLM chat clients
"""

__version__ = "0.1.0"
__logo__ = "🧮"
