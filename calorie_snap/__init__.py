"""
Calorie Snap analysis service.

Photo-to-calories pipeline: a captured food image is validated, admitted
by a per-client rate limiter, forwarded to a vision-language model and the
free-form answer is normalized into a stable JSON envelope.

Structure:
- domain/: Analysis models, validation, decoding, normalization, errors
- infrastructure/: External concerns (OpenAI, rate limiting, scheduler)
- application/: Analysis pipeline orchestrating domain + infrastructure
- api/: FastAPI HTTP layer
- client/: Capture helpers and HTTP client for the endpoint
"""

__version__ = "1.0.0"
