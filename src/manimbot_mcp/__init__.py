"""manimbot-mcp: prompt-to-Manim animation generation with Gemini."""

__version__ = "0.1.0"
