"""Site audit: performance, caching and SEO-basics scoring for a website."""

__version__ = "0.4.2"
