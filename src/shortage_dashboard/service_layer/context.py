from __future__ import annotations
from typing import List, Optional

from shared.domain.commands import Event
from shortage_dashboard.adapters.api_client import AbstractShortageClient, HTTPShortageClient
from shortage_dashboard.domain import events
from shortage_dashboard.service_layer.sequencing import RequestSequencer
from shortage_dashboard.store import AggregationStore


class DashboardContext:
    """
    Everything a dashboard handler needs: the store, the API client and
    the request sequencer. Handlers record events on it and the message
    bus collects them.
    """

    def __init__(
        self,
        store: Optional[AggregationStore] = None,
        client: Optional[AbstractShortageClient] = None,
        sequencer: Optional[RequestSequencer] = None,
    ):
        self.store = store or AggregationStore()
        self.client = client or HTTPShortageClient()
        self.sequencer = sequencer or RequestSequencer()
        self.events: List[Event] = []
        self.last_load: Optional[events.IncidentsLoaded] = None
        self.stale_responses = 0

    def collect_new_events(self):
        while self.events:
            yield self.events.pop(0)
