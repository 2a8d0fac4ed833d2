"""Feed sources that list the articles a feed currently publishes."""

from .feeds import FeedparserSource, FeedSource, parse_feed

__all__ = ["FeedSource", "FeedparserSource", "parse_feed"]
