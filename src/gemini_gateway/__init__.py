"""
Gemini Gateway package.

Provides:
- HTTP routes that forward text prompts and uploaded files to Gemini
- An async Gemini generateContent adapter behind a swappable capability
"""
