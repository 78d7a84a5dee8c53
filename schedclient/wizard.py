from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .adapters.api import ApiClient
from .adapters.teams import fetch_roster
from .cache import QueryCache
from .collect import ConfigCollector
from .models import ScheduledMatch, Team
from .paginate import Paginator
from .selection import TeamSelection, filter_teams, requires_team_selection
from .submit import Notify, ScheduleSubmitter, SubmitOutcome, log_notify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigView:
    name = "config"


@dataclass
class TeamsView:
    teams: List[Team]
    query: str = ""
    name = "teams"

    @property
    def filtered(self) -> List[Team]:
        return filter_teams(self.teams, self.query)


@dataclass
class ResultsView:
    pages: Paginator[ScheduledMatch]
    name = "results"

    @property
    def matches(self) -> List[ScheduledMatch]:
        return self.pages.items


View = Union[ConfigView, TeamsView, ResultsView]


@dataclass
class WizardState:
    collector: ConfigCollector
    selection: TeamSelection = field(default_factory=TeamSelection)
    view: View = field(default_factory=ConfigView)
    roster: Optional[List[Team]] = None
    error: Optional[str] = None


class SchedulerWizard:
    """Match generation wizard for one stage.

    State only exists between ``open()`` and ``close()``. Results live inside
    the results view, so they cannot be shown before a successful submission.
    """

    def __init__(
        self,
        client: ApiClient,
        cache: QueryCache,
        stage_id: str,
        stage_name: str,
        stage_type: str,
        tournament_id: str,
        notify: Notify = log_notify,
    ):
        self.client = client
        self.stage_id = stage_id
        self.stage_name = stage_name
        self.stage_type = stage_type
        self.tournament_id = tournament_id
        self.notify = notify
        self.submitter = ScheduleSubmitter(client, cache, notify)
        self.state: Optional[WizardState] = None

    # lifecycle

    @property
    def is_open(self) -> bool:
        return self.state is not None

    def open(self) -> None:
        self.state = WizardState(collector=ConfigCollector(self.stage_type))
        logger.debug("scheduler wizard opened for %s (%s)", self.stage_name, self.stage_type)

    def close(self) -> None:
        if self.submitter.cancel():
            logger.info("closing wizard for %s with a request in flight, cancelling it", self.stage_name)
        self.state = None

    def reset(self) -> None:
        self.open()

    def _state(self) -> WizardState:
        if self.state is None:
            raise RuntimeError("scheduler wizard is not open")
        return self.state

    # accessors

    @property
    def collector(self) -> ConfigCollector:
        return self._state().collector

    @property
    def selection(self) -> TeamSelection:
        return self._state().selection

    @property
    def view(self) -> View:
        return self._state().view

    @property
    def error(self) -> Optional[str]:
        return self._state().error

    @property
    def loading(self) -> bool:
        return self.submitter.in_flight

    @property
    def needs_teams(self) -> bool:
        return requires_team_selection(self.collector.scheduler_type)

    def steps(self) -> List[str]:
        out = ["config"]
        if self.needs_teams:
            out.append("teams")
        if isinstance(self.view, ResultsView):
            out.append("results")
        return out

    # config step

    def select_scheduler(self, scheduler_type: str) -> bool:
        return self.collector.select_scheduler(scheduler_type)

    def back_to_config(self) -> None:
        self._state().view = ConfigView()

    # teams step

    async def enter_teams(self) -> bool:
        state = self._state()
        if not self.needs_teams:
            return False
        if state.roster is None:
            state.roster = await fetch_roster(
                self.client, self.collector.scheduler_type, self.stage_id, self.tournament_id, self.notify
            )
        state.view = TeamsView(teams=state.roster)
        return True

    def _teams_view(self) -> TeamsView:
        view = self.view
        if not isinstance(view, TeamsView):
            raise RuntimeError("team selection is only available on the teams step")
        return view

    def search(self, query: str) -> List[Team]:
        view = self._teams_view()
        view.query = query
        return view.filtered

    def toggle_team(self, team_id: str) -> None:
        self.selection.toggle(team_id)

    def select_filtered(self) -> None:
        self.selection.select_filtered(self._teams_view().filtered)

    # submission

    async def generate(self) -> SubmitOutcome:
        state = self._state()
        state.error = None
        outcome = await self.submitter.submit(self.stage_id, state.collector, state.selection)
        if self.state is not state:
            # closed while the request was running
            return outcome
        if outcome.ok:
            state.view = ResultsView(pages=Paginator(outcome.matches))
        elif outcome.status in ("invalid", "failed"):
            state.error = outcome.error
        return outcome
