# frontend/test_view_sync.py
# Identity gate, subscription lifecycle and the UI-thread dispatcher

import threading

from frontend.pages import AlertsPage, DashboardPage, LoginPage
from frontend.records import ALERTS, OFFERS, REQUESTS
from frontend.view_sync import Dispatcher, Lifetime, LiveList


class TestDispatcher:
    def test_runs_in_post_order(self):
        d = Dispatcher()
        seen = []
        d.post(seen.append, 1)
        d.post(seen.append, 2)
        d.post(seen.append, 3)
        assert d.pending == 3
        assert d.run_pending() == 3
        assert seen == [1, 2, 3]
        assert d.run_pending() == 0

    def test_posts_from_other_threads_run_on_caller(self):
        d = Dispatcher()
        ran_on = []
        workers = [
            threading.Thread(target=lambda: d.post(lambda: ran_on.append(threading.current_thread())))
            for _ in range(5)
        ]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        d.run_pending()
        assert ran_on == [threading.current_thread()] * 5


class TestLifetime:
    def test_guard_drops_after_cancel(self):
        lifetime = Lifetime()
        seen = []
        guarded = lifetime.guard(seen.append)
        guarded("before")
        lifetime.cancel()
        guarded("after")
        assert lifetime.cancelled
        assert seen == ["before"]


class TestLiveList:
    def test_delivery_replaces_wholesale(self, make_record):
        live = LiveList(ALERTS)
        first = [make_record("alert", location="A")]
        second = [make_record("alert", location="B"), make_record("alert", location="C")]
        live.replace(first)
        live.replace(second)
        assert [a.location for a in live] == ["B", "C"]
        assert live.version == 2

    def test_failure_keeps_last_snapshot(self, make_record):
        live = LiveList(ALERTS)
        live.replace([make_record("alert")])
        live.fail(RuntimeError("gone"))
        assert len(live) == 1
        assert live.error is not None


class TestIdentityGate:
    def test_loading_does_no_data_access(self, app, store):
        page = AlertsPage(app)
        page.mount()
        assert app.identity.loading
        assert page.view_status == "loading"
        assert store.subscriptions == []

    def test_absent_redirects_to_login(self, app, store):
        page = AlertsPage(app)
        page.mount()
        app.identity.resolve(None)
        assert page.view_status == "redirect"
        assert app.route == "login"
        assert store.subscriptions == []

    def test_present_opens_every_subscription(self, signed_in, store):
        page = DashboardPage(signed_in)
        page.mount()
        assert page.view_status == "ready"
        assert sorted(s.collection for s in store.subscriptions) == sorted([ALERTS, REQUESTS, OFFERS])

    def test_sign_out_releases_and_redirects(self, signed_in, store):
        page = DashboardPage(signed_in)
        page.mount()
        signed_in.identity.sign_out()
        assert all(s.unsubscribe_calls == 1 for s in store.subscriptions)
        assert page.open_subscriptions == 0
        assert signed_in.route == "login"

    def test_public_page_redirects_signed_in_user(self, signed_in):
        page = LoginPage(signed_in)
        page.mount()
        assert page.view_status == "redirect"
        assert signed_in.route == "alerts"

    def test_public_page_ready_when_signed_out(self, app):
        app.identity.resolve(None)
        page = LoginPage(app)
        page.mount()
        assert page.view_status == "ready"


class TestSubscriptionLifecycle:
    def test_snapshots_reach_view_through_dispatcher(self, signed_in, store, make_record):
        page = AlertsPage(signed_in)
        page.mount()
        (sub,) = store.open(ALERTS)

        sub.emit([make_record("alert", location="Village A")])
        assert page.alerts == []  # not applied until the UI thread drains
        signed_in.dispatcher.run_pending()
        assert [a.location for a in page.alerts] == ["Village A"]

    def test_unmount_releases_each_subscription_once(self, signed_in, store):
        page = DashboardPage(signed_in)
        page.mount()
        page.unmount()
        page.unmount()
        assert len(store.subscriptions) == 3
        assert all(s.unsubscribe_calls == 1 for s in store.subscriptions)

    def test_no_view_update_after_unmount(self, signed_in, store, make_record):
        page = AlertsPage(signed_in)
        page.mount()
        (sub,) = store.open(ALERTS)
        # Delivered by the reader thread but not yet drained when the page goes away
        sub.emit([make_record("alert")])
        page.unmount()
        signed_in.dispatcher.run_pending()
        assert page.alerts == []

    def test_identity_changes_after_unmount_are_ignored(self, signed_in, store):
        page = AlertsPage(signed_in)
        page.mount()
        page.unmount()
        signed_in.navigate("dashboard")
        signed_in.identity.sign_out()
        assert signed_in.route == "dashboard"

    def test_subscription_error_notifies_and_keeps_list(self, signed_in, store, make_record):
        page = AlertsPage(signed_in)
        page.mount()
        (sub,) = store.open(ALERTS)
        sub.emit([make_record("alert")])
        sub.fail(RuntimeError("socket closed"))
        signed_in.dispatcher.run_pending()
        assert len(page.alerts) == 1
        assert page.lists[ALERTS].error is not None
        assert signed_in.notifications[-1].level == "error"

    def test_remount_after_unmount_resubscribes(self, signed_in, store):
        page = AlertsPage(signed_in)
        page.mount()
        page.unmount()
        page.mount()
        assert len(store.open(ALERTS)) == 1
        assert not page.lifetime.cancelled


class TestNotifications:
    def test_notify_and_dismiss(self, app):
        first = app.notify("one")
        second = app.notify("two", "error")
        app.dismiss(first.id)
        assert [n.message for n in app.notifications] == ["two"]
        assert second.level == "error"
