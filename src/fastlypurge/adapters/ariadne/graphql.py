"""Surrogate-key GraphQL ASGI app for Ariadne."""

from typing import Any

from ariadne.asgi import GraphQL

from fastlypurge.adapters.ariadne.handler import SurrogateKeyGraphQLHTTPHandler
from fastlypurge.core.services.surrogate_keys import SurrogateKeyGenerator


class SurrogateKeyGraphQL(GraphQL):
    """Drop-in replacement for Ariadne's GraphQL that tags responses.

    Example::

        app = SurrogateKeyGraphQL(schema, generator=generator, debug=True)
    """

    def __init__(
        self,
        schema: Any,
        generator: SurrogateKeyGenerator,
        **kwargs: Any,
    ) -> None:
        http_handler = SurrogateKeyGraphQLHTTPHandler(generator=generator)
        super().__init__(schema, http_handler=http_handler, **kwargs)
        self._generator = generator

    @property
    def generator(self) -> SurrogateKeyGenerator:
        return self._generator
