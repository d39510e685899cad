"""Request middleware: logging, timing, actor resolution, rate limits."""
