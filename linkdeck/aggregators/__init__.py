"""Statistics aggregators."""

from linkdeck.aggregators.stats_aggregator import StatsAggregator, get_aggregator

__all__ = ["StatsAggregator", "get_aggregator"]
