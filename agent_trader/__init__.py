"""
Agent Trader - decision & execution engine for autonomous paper-trading agents.
"""
__version__ = "1.0.0"
