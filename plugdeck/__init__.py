"""
plugdeck: manage MCP servers and skills across AI-assistant CLI tools.
"""

__version__ = "0.1.0"
