"""Client singletons for external API interactions."""
from recofeed.clients.places_client import PlacesAPIError, PlacesClient
from recofeed.clients.openai_client import OpenAIClient

__all__ = ["PlacesAPIError", "PlacesClient", "OpenAIClient"]
