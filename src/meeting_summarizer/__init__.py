"""
Meeting Summarizer backend package.

Provides:
- Transcript summarization via an OpenAI-compatible chat-completions API
- Optional delivery of summaries through a transactional email API
- FastAPI app with a fixed-window rate limiter on /api routes
"""
__version__ = "0.1.0"
