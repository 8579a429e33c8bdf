import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

QueryValue = Union[str, List[str]]


@dataclass
class ProxyRequest:
    """Parameters of one storefront request forwarded through the App Proxy."""

    query: Dict[str, QueryValue] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)

    def merged(self) -> Dict[str, Any]:
        """Query parameters overridden by body parameters."""
        params: Dict[str, Any] = dict(self.query)
        params.update(self.body)
        return params


@dataclass
class QuoteRequest:
    """A normalized quote request with SKU codes resolved to Yampi ids."""

    zipcode: str
    skus_ids: List[int]
    quantities: List[int]
    total: Optional[float] = None
    order_id: Optional[Any] = None
    utm_email: Optional[str] = None

    def cache_key(self) -> str:
        """
        Serialize the fields that identify a quote.

        Ids and quantities keep their positional pairing, so reordering the
        cart produces a different key.
        """
        return json.dumps(
            {
                "cep": self.zipcode,
                "ids": list(self.skus_ids),
                "qtys": list(self.quantities),
                "total": self.total,
            },
            sort_keys=True,
            separators=(",", ":"),
        )


@dataclass
class ProxyResponse:
    """Status code and JSON body returned to the storefront."""

    status_code: int
    body: Mapping[str, Any]

    @classmethod
    def quotes(cls, data: List[Any], cached: bool = False) -> "ProxyResponse":
        body: Dict[str, Any] = {"data": data}
        if cached:
            body["cached"] = True
        return cls(status_code=200, body=body)
