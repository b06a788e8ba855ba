"""
frontend/pages.py
Page and form controllers. Framework-free: app.py renders them.

Every handler converts expected failures into a notification or an inline
message; nothing here raises into the UI for a service error.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

try:
    from frontend.config import IS_DEV
    from frontend.identity import AuthError, auth_error_message
    from frontend.prompts import SUMMARY_LANGUAGES, match_offers_prompt, match_requests_prompt, summary_prompt
    from frontend.records import (
        ALERT_FORM_DEFAULTS,
        ALERTS,
        OFFER_FORM_DEFAULTS,
        OFFERS,
        REQUEST_FORM_DEFAULTS,
        REQUESTS,
        ResourceOffer,
        ResourceRequest,
        ValidationError,
        validate_alert_form,
        validate_offer_form,
        validate_request_form,
    )
    from frontend.view_sync import AppState, PageController
except ModuleNotFoundError:
    from config import IS_DEV
    from identity import AuthError, auth_error_message
    from prompts import SUMMARY_LANGUAGES, match_offers_prompt, match_requests_prompt, summary_prompt
    from records import (
        ALERT_FORM_DEFAULTS,
        ALERTS,
        OFFER_FORM_DEFAULTS,
        OFFERS,
        REQUEST_FORM_DEFAULTS,
        REQUESTS,
        ResourceOffer,
        ResourceRequest,
        ValidationError,
        validate_alert_form,
        validate_offer_form,
        validate_request_form,
    )
    from view_sync import AppState, PageController


# ============================================================================
# RECORD FORMS
# ============================================================================

@dataclass(frozen=True)
class FormMessages:
    signed_out: str
    success: str
    failure: str


ALERT_MESSAGES = FormMessages(
    signed_out="You must be logged in to report an alert.",
    success="Flood alert reported successfully!",
    failure="Error reporting flood alert. Please try again.",
)
REQUEST_MESSAGES = FormMessages(
    signed_out="You must be logged in to submit a request.",
    success="Resource request submitted successfully!",
    failure="Error submitting resource request. Please try again.",
)
OFFER_MESSAGES = FormMessages(
    signed_out="You must be logged in to submit an offer.",
    success="Resource offer submitted successfully!",
    failure="Error submitting resource offer. Please try again.",
)


class RecordForm:
    """
    One create-record form.

    `version` changes whenever the form resets so the renderer can rebuild
    its widgets with the initial values.
    """

    def __init__(
        self,
        page: PageController,
        collection: str,
        defaults: Mapping[str, Any],
        validate: Callable[[Mapping[str, Any]], Dict[str, Any]],
        messages: FormMessages,
    ):
        self.page = page
        self.collection = collection
        self.defaults = dict(defaults)
        self.validate = validate
        self.messages = messages
        self.values: Dict[str, Any] = dict(defaults)
        self.error: Optional[str] = None
        self.submitting = False
        self.version = 0

    def update(self, **values) -> None:
        self.values.update(values)

    def reset(self) -> None:
        self.values = dict(self.defaults)
        self.error = None
        self.version += 1

    def submit(self, **values) -> bool:
        """
        Validate and write one record. Returns True if a write was started.
        """
        if values:
            self.update(**values)
        if self.submitting:
            return False

        app = self.page.app
        if app.identity.user is None:
            app.notify(self.messages.signed_out, "error")
            return False

        try:
            payload = self.validate(self.values)
        except ValidationError as e:
            self.error = e.message
            return False

        self.error = None
        self.submitting = True
        self.page.run_async(
            lambda: app.store.create(self.collection, payload),
            on_success=self._on_created,
            on_failure=self._on_failed,
            always=self._done,
        )
        return True

    def _done(self) -> None:
        self.submitting = False

    def _on_created(self, record) -> None:
        if IS_DEV:
            print(f"[VIEW] Created {self.collection}/{record.id}")
        self.reset()
        self.page.app.notify(self.messages.success, "success")

    def _on_failed(self, error: Exception) -> None:
        print(f"[VIEW] Write to {self.collection} failed: {error}")
        self.page.app.notify(self.messages.failure, "error")


# ============================================================================
# SUMMARIZER
# ============================================================================

EMPTY_REPORTS = "Please paste some flood reports to summarize."
SUMMARY_FAILED = "Error generating summary. Please try again."


class Summarizer:
    """Free-text reports -> bulleted summary. One request in flight at a time."""

    def __init__(self, page: PageController, languages: Optional[Sequence[str]] = None):
        self.page = page
        self.languages = tuple(languages) if languages else ()
        self.reports = ""
        self.language: Optional[str] = self.languages[0] if self.languages else None
        self.summary: Optional[str] = None
        self.error: Optional[str] = None
        self.busy = False

    def summarize(self, reports: Optional[str] = None, language: Optional[str] = None) -> bool:
        """Returns True if a generation call was started."""
        if reports is not None:
            self.reports = reports
        if language is not None:
            if language not in self.languages:
                raise ValueError(f"Unsupported summary language: {language}")
            self.language = language
        if self.busy:
            return False

        if not self.reports.strip():
            self.error = EMPTY_REPORTS
            self.summary = None
            return False

        self.busy = True
        self.error = None
        self.summary = None
        prompt = summary_prompt(self.reports, self.language)
        self.page.run_async(
            lambda: self.page.app.generative.generate(prompt),
            on_success=self._on_summary,
            on_failure=self._on_failed,
            always=self._done,
        )
        return True

    def _done(self) -> None:
        self.busy = False

    def _on_summary(self, text: str) -> None:
        self.summary = text

    def _on_failed(self, error: Exception) -> None:
        print(f"[VIEW] Summary failed: {error}")
        self.error = SUMMARY_FAILED
        self.summary = None


# ============================================================================
# PAGES
# ============================================================================

class DashboardPage(PageController):
    route = "dashboard"
    collections = (ALERTS, REQUESTS, OFFERS)

    def __init__(self, app: AppState):
        super().__init__(app)
        self.summarizer = Summarizer(self)


class AlertsPage(PageController):
    route = "alerts"
    collections = (ALERTS,)

    def __init__(self, app: AppState):
        super().__init__(app)
        self.form = RecordForm(self, ALERTS, ALERT_FORM_DEFAULTS, validate_alert_form, ALERT_MESSAGES)

    @property
    def alerts(self):
        return self.lists[ALERTS].items


MATCH_SUCCESS = "Matching results generated!"
MATCH_FAILED = "Error generating match. Please try again."
RESOURCE_TABS = ("needs", "offers")


class ResourcesPage(PageController):
    route = "resources"
    collections = (REQUESTS, OFFERS)

    def __init__(self, app: AppState):
        super().__init__(app)
        self.active_tab = "needs"
        self.request_form = RecordForm(self, REQUESTS, REQUEST_FORM_DEFAULTS, validate_request_form, REQUEST_MESSAGES)
        self.offer_form = RecordForm(self, OFFERS, OFFER_FORM_DEFAULTS, validate_offer_form, OFFER_MESSAGES)
        self.match_results: Optional[str] = None

    @property
    def requests(self):
        return self.lists[REQUESTS].items

    @property
    def offers(self):
        return self.lists[OFFERS].items

    def select_tab(self, tab: str) -> None:
        if tab not in RESOURCE_TABS:
            raise ValueError(f"Unknown resources tab: {tab}")
        self.active_tab = tab

    @property
    def matching(self) -> bool:
        return self.app.matching

    def match_offers(self, request: ResourceRequest) -> bool:
        """Rank current offers against one request."""
        return self._match(match_offers_prompt(request, self.offers))

    def match_requests(self, offer: ResourceOffer) -> bool:
        """Rank current requests against one offer."""
        return self._match(match_requests_prompt(offer, self.requests))

    def _match(self, prompt: str) -> bool:
        app = self.app
        # Shared across records: a second trigger while one is in flight is ignored
        if app.matching:
            return False
        app.matching = True
        self.match_results = None
        self.run_async(
            lambda: app.generative.generate(prompt),
            on_success=self._on_match,
            on_failure=self._on_match_failed,
            always=self._match_done,
        )
        return True

    def _match_done(self) -> None:
        self.app.matching = False

    def _on_match(self, text: str) -> None:
        self.match_results = text
        self.app.notify(MATCH_SUCCESS, "success")

    def _on_match_failed(self, error: Exception) -> None:
        print(f"[VIEW] Match failed: {error}")
        self.match_results = None
        self.app.notify(MATCH_FAILED, "error")

    def clear_matches(self) -> None:
        self.match_results = None


class SummarizePage(PageController):
    route = "summarize"

    def __init__(self, app: AppState):
        super().__init__(app)
        self.summarizer = Summarizer(self, languages=SUMMARY_LANGUAGES)


class _CredentialsPage(PageController):
    public = True
    flow = ""

    def __init__(self, app: AppState):
        super().__init__(app)
        self.error: Optional[str] = None

    def _call(self, email: str, password: str):
        raise NotImplementedError

    def submit(self, email: str, password: str) -> bool:
        """Returns True on success; the identity change then redirects to alerts."""
        self.error = None
        try:
            self._call(email.strip(), password)
        except AuthError as e:
            self.error = auth_error_message(e.code, self.flow)
            return False
        return True


class LoginPage(_CredentialsPage):
    route = "login"
    flow = "login"

    def _call(self, email: str, password: str):
        return self.app.identity.sign_in(email, password)


class SignupPage(_CredentialsPage):
    route = "signup"
    flow = "signup"

    def _call(self, email: str, password: str):
        return self.app.identity.sign_up(email, password)


PAGES = {
    page.route: page
    for page in (DashboardPage, AlertsPage, ResourcesPage, SummarizePage, LoginPage, SignupPage)
}
