# frontend/test_pages.py
# Record submission, summarization and matching controllers

import threading
import time

import pytest

from frontend.api_client import ServiceError
from frontend.generative import GenerationError
from frontend.identity import AuthError
from frontend.pages import (
    AlertsPage,
    DashboardPage,
    LoginPage,
    ResourcesPage,
    SignupPage,
    SummarizePage,
)
from frontend.records import ALERTS, OFFERS, REQUESTS
from frontend.view_sync import AppState, Dispatcher, spawn_thread


def mounted(page_cls, app):
    page = page_cls(app)
    page.mount()
    return page


class TestRecordSubmission:
    def test_alert_written_once_and_form_reset(self, signed_in, store):
        page = mounted(AlertsPage, signed_in)
        started = page.form.submit(location=" Village A ", status="ongoing", severity="high")
        assert started
        assert page.form.submitting  # result not drained yet

        signed_in.dispatcher.run_pending()

        assert store.created == [(ALERTS, {"location": "Village A", "status": "ongoing", "severity": "high"})]
        assert page.form.values == {"location": "", "status": "observed", "severity": "low"}
        assert page.form.version == 1
        assert not page.form.submitting
        assert signed_in.notifications[-1].message == "Flood alert reported successfully!"
        assert signed_in.notifications[-1].level == "success"

    def test_new_record_appears_via_snapshot_not_write(self, signed_in, store, make_record):
        page = mounted(AlertsPage, signed_in)
        page.form.submit(location="Village A", status="ongoing", severity="high")
        signed_in.dispatcher.run_pending()
        assert page.alerts == []

        (sub,) = store.open(ALERTS)
        sub.emit([make_record("alert", location="Village A"), make_record("alert", location="Older")])
        signed_in.dispatcher.run_pending()
        assert page.alerts[0].location == "Village A"

    def test_rejected_without_identity(self, app, store):
        page = AlertsPage(app)
        assert not page.form.submit(location="Village A", status="ongoing", severity="high")
        assert store.created == []
        assert app.notifications[-1].message == "You must be logged in to report an alert."
        assert app.notifications[-1].level == "error"

    @pytest.mark.parametrize("form_attr,message", [
        ("request_form", "You must be logged in to submit a request."),
        ("offer_form", "You must be logged in to submit an offer."),
    ])
    def test_resource_forms_rejected_without_identity(self, app, store, form_attr, message):
        page = ResourcesPage(app)
        form = getattr(page, form_attr)
        assert not form.submit(item="Water", quantity="5", location="Zone 3", contact="x")
        assert store.created == []
        assert app.notifications[-1].message == message

    @pytest.mark.parametrize("values,field", [
        ({"item": "", "quantity": "5", "location": "Zone", "contact": "x"}, "item"),
        ({"item": "Water", "quantity": "0", "location": "Zone", "contact": "x"}, "quantity"),
        ({"item": "Water", "quantity": "-2", "location": "Zone", "contact": "x"}, "quantity"),
        ({"item": "Water", "quantity": "2.5", "location": "Zone", "contact": "x"}, "quantity"),
        ({"item": "Water", "quantity": "ten", "location": "Zone", "contact": "x"}, "quantity"),
        ({"item": "Water", "quantity": "5\u00b2", "location": "Zone", "contact": "x"}, "quantity"),
        ({"item": "Water", "quantity": "5", "location": "  ", "contact": "x"}, "location"),
        ({"item": "Water", "quantity": "5", "location": "Zone", "contact": ""}, "contact"),
        ({"item": "Water", "quantity": "5", "location": "Zone", "contact": "x", "urgency": "critical"}, "urgency"),
    ])
    def test_invalid_request_shows_inline_and_writes_nothing(self, signed_in, store, values, field):
        page = mounted(ResourcesPage, signed_in)
        assert not page.request_form.submit(**values)
        assert page.request_form.error
        assert store.created == []
        assert signed_in.notifications == []

    def test_request_quantity_parsed(self, signed_in, store):
        page = mounted(ResourcesPage, signed_in)
        page.request_form.submit(item="Water", quantity="50", location="Zone 3", contact="98640", urgency="high")
        signed_in.dispatcher.run_pending()
        assert store.created[0][1]["quantity"] == 50
        assert signed_in.notifications[-1].message == "Resource request submitted successfully!"

    def test_offer_submission(self, signed_in, store):
        page = mounted(ResourcesPage, signed_in)
        page.offer_form.submit(item="Boats", quantity=2, location="Zone 1", contact="b@x.org",
                               availability="within 24 hours")
        signed_in.dispatcher.run_pending()
        assert store.created == [(OFFERS, {"item": "Boats", "quantity": 2, "location": "Zone 1",
                                           "contact": "b@x.org", "availability": "within 24 hours"})]
        assert signed_in.notifications[-1].message == "Resource offer submitted successfully!"

    @pytest.mark.parametrize("page_cls,form_attr,values,message", [
        (AlertsPage, "form", {"location": "Village A", "status": "ongoing", "severity": "high"},
         "Error reporting flood alert. Please try again."),
        (ResourcesPage, "request_form", {"item": "Water", "quantity": "5", "location": "Z", "contact": "c"},
         "Error submitting resource request. Please try again."),
        (ResourcesPage, "offer_form", {"item": "Boats", "quantity": "1", "location": "Z", "contact": "c"},
         "Error submitting resource offer. Please try again."),
    ])
    def test_write_failure_keeps_form(self, signed_in, store, page_cls, form_attr, values, message):
        store.fail_with = ServiceError("down", status=503)
        page = mounted(page_cls, signed_in)
        form = getattr(page, form_attr)
        form.submit(**values)
        signed_in.dispatcher.run_pending()
        assert signed_in.notifications[-1].message == message
        assert signed_in.notifications[-1].level == "error"
        for key, value in values.items():
            assert form.values[key] == value
        assert form.version == 0
        assert not form.submitting

    def test_late_write_result_dropped_after_unmount(self, signed_in, store):
        page = mounted(AlertsPage, signed_in)
        page.form.submit(location="Village A", status="ongoing", severity="high")
        page.unmount()
        signed_in.dispatcher.run_pending()
        # The write itself still happened; only the view update is dropped
        assert len(store.created) == 1
        assert signed_in.notifications == []
        assert not page.form.submitting


class TestSummarize:
    def test_blank_reports_never_reach_model(self, signed_in, generative):
        page = mounted(SummarizePage, signed_in)
        assert not page.summarizer.summarize("   \n\t ")
        assert page.summarizer.error == "Please paste some flood reports to summarize."
        assert page.summarizer.summary is None
        assert generative.prompts == []

    def test_summary_displayed_verbatim(self, signed_in, generative):
        generative.text = "- Zone 3 flooded\n\n- Boats needed  "
        page = mounted(SummarizePage, signed_in)
        page.summarizer.summarize("Water rising near Zone 3", "Assamese")
        assert page.summarizer.busy
        signed_in.dispatcher.run_pending()
        assert page.summarizer.summary == "- Zone 3 flooded\n\n- Boats needed  "
        assert not page.summarizer.busy
        assert "Provide the summary in Assamese." in generative.prompts[0]
        assert "Water rising near Zone 3" in generative.prompts[0]

    def test_failure_clears_summary(self, signed_in, generative):
        page = mounted(SummarizePage, signed_in)
        page.summarizer.summary = "old"
        generative.error = GenerationError("quota")
        page.summarizer.summarize("reports")
        signed_in.dispatcher.run_pending()
        assert page.summarizer.error == "Error generating summary. Please try again."
        assert page.summarizer.summary is None
        assert not page.summarizer.busy

    def test_second_trigger_while_busy_is_noop(self, signed_in, generative):
        page = mounted(DashboardPage, signed_in)
        assert page.summarizer.summarize("first")
        assert not page.summarizer.summarize("second")
        signed_in.dispatcher.run_pending()
        assert len(generative.prompts) == 1

    def test_dashboard_summary_has_no_language(self, signed_in, generative):
        page = mounted(DashboardPage, signed_in)
        page.summarizer.summarize("reports")
        assert "Provide the summary in" not in generative.prompts[0]

    def test_unknown_language_rejected(self, signed_in):
        page = mounted(SummarizePage, signed_in)
        with pytest.raises(ValueError):
            page.summarizer.summarize("reports", "Klingon")


class TestMatching:
    def test_match_offers_with_no_offers(self, signed_in, generative, make_record):
        generative.text = "No matching offers yet."
        page = mounted(ResourcesPage, signed_in)
        request = make_record("request", item="Water", quantity=50, location="Zone 3", urgency="high")

        assert page.match_offers(request)
        signed_in.dispatcher.run_pending()

        prompt = generative.prompts[0]
        assert "I am requesting 'Water' with a quantity of 50 at location 'Zone 3'" in prompt
        assert "(no current offers)" in prompt
        assert page.match_results == "No matching offers yet."
        assert signed_in.notifications[-1].message == "Matching results generated!"
        assert not signed_in.matching

    def test_match_requests_lists_every_request(self, signed_in, store, generative, make_record):
        page = mounted(ResourcesPage, signed_in)
        (sub,) = store.open(REQUESTS)
        sub.emit([make_record("request", item="Rice"), make_record("request", item="Tarps", urgency="low")])
        signed_in.dispatcher.run_pending()

        page.match_requests(make_record("offer"))
        prompt = generative.prompts[0]
        assert "- Item: Rice, Quantity: 50, Location: Zone 3, Urgency: high" in prompt
        assert "- Item: Tarps, Quantity: 50, Location: Zone 3, Urgency: low" in prompt

    def test_failure_clears_results(self, signed_in, generative, make_record):
        page = mounted(ResourcesPage, signed_in)
        page.match_results = "stale"
        generative.error = GenerationError("boom")
        page.match_offers(make_record("request"))
        signed_in.dispatcher.run_pending()
        assert page.match_results is None
        assert signed_in.notifications[-1].message == "Error generating match. Please try again."
        assert not signed_in.matching

    def test_clear_matches(self, signed_in):
        page = mounted(ResourcesPage, signed_in)
        page.match_results = "something"
        page.clear_matches()
        assert page.match_results is None

    def test_second_click_while_matching_is_noop(self, signed_in, generative, make_record):
        # Real background thread: the first call blocks inside the model
        app = AppState(identity=signed_in.identity, store=signed_in.store, generative=generative,
                       dispatcher=Dispatcher(), spawn=spawn_thread)
        generative.gate = threading.Event()
        page = mounted(ResourcesPage, app)

        assert page.match_offers(make_record("request", item="Water"))
        assert generative.started.wait(5)
        assert app.matching
        assert not page.match_requests(make_record("offer", item="Boats"))
        assert not page.match_offers(make_record("request", item="Rice"))

        generative.gate.set()
        for _ in range(100):
            if app.dispatcher.run_pending():
                break
            time.sleep(0.05)

        assert len(generative.prompts) == 1
        assert not app.matching
        assert page.match_results == "generated text"

    def test_flag_released_even_if_page_unmounted(self, signed_in, make_record):
        page = mounted(ResourcesPage, signed_in)
        page.match_offers(make_record("request"))
        page.unmount()
        signed_in.dispatcher.run_pending()
        assert not signed_in.matching
        assert page.match_results is None
        assert signed_in.notifications == []

    def test_tabs(self, signed_in):
        page = mounted(ResourcesPage, signed_in)
        assert page.active_tab == "needs"
        page.select_tab("offers")
        assert page.active_tab == "offers"
        with pytest.raises(ValueError):
            page.select_tab("archive")


class TestCredentialPages:
    def test_login_error_mapped(self, app, fake_api):
        app.identity.resolve(None)
        fake_api.routes[("POST", "/auth/login")] = ServiceError("nope", status=401, code="auth/wrong-password")
        page = mounted(LoginPage, app)
        assert not page.submit("a@example.com", "bad")
        assert page.error == "Invalid email or password."

    def test_signup_error_mapped(self, app, fake_api):
        app.identity.resolve(None)
        fake_api.routes[("POST", "/auth/register")] = ServiceError("taken", status=400,
                                                                  code="auth/email-already-in-use")
        page = mounted(SignupPage, app)
        assert not page.submit("a@example.com", "secret123")
        assert page.error == "The email address is already in use by another account."

    def test_login_success_redirects_to_alerts(self, app, fake_api):
        app.identity.resolve(None)
        app.navigate("login")
        fake_api.routes[("POST", "/auth/login")] = {
            "access_token": "tok", "user": {"id": "user-1", "email": "a@example.com"},
        }
        page = mounted(LoginPage, app)
        assert page.submit(" a@example.com ", "secret123")
        assert fake_api.calls[-1] == ("POST", "/auth/login", {"email": "a@example.com", "password": "secret123"})
        assert app.route == "alerts"
        assert page.view_status == "redirect"

    def test_auth_error_carries_code(self, app, fake_api):
        fake_api.routes[("POST", "/auth/login")] = ServiceError("x", status=400, code="auth/invalid-email")
        with pytest.raises(AuthError) as exc:
            app.identity.sign_in("bad", "pw")
        assert exc.value.code == "auth/invalid-email"
