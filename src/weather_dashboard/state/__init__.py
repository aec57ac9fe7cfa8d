"""Dashboard state components: preferences, favorites, recent searches, caches."""

from .favorites import FavoritesStore
from .forecast_cache import ForecastCache
from .preferences import PreferenceStore
from .recent import RecentSearches
from .weather_cache import DEFAULT_STALENESS_THRESHOLD_MS, RefreshReport, WeatherCache

__all__ = [
    "DEFAULT_STALENESS_THRESHOLD_MS",
    "FavoritesStore",
    "ForecastCache",
    "PreferenceStore",
    "RecentSearches",
    "RefreshReport",
    "WeatherCache",
]
