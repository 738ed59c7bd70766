from django.test import TestCase

from orders.exceptions import (
    Forbidden,
    InvalidState,
    InvalidTransition,
    NotFound,
    TerminalState,
    ValidationError,
)
from orders.lifecycle import LifecycleManager, canonical_status, clamp_rating, new_order_id
from orders.models import Order
from orders.store import OrderStore

OWNER = "cust@example.com"
RESULT = {"name": "tuned.bin", "stored_name": "uploads/x/tuned.bin", "url": "/uploads/x/tuned.bin", "size": 12}


class Recorder:
    """Notifier double that remembers which events fired."""

    def __init__(self):
        self.events = []

    def __call__(self, order, event):
        self.events.append((order.order_id, event))
        return True


class LifecycleTestCase(TestCase):
    def setUp(self):
        self.notifier = Recorder()
        self.lifecycle = LifecycleManager(OrderStore(retries=0, backoff=0), notifier=self.notifier)
        self.order = self.lifecycle.create_order(
            owner_identity=OWNER,
            original_file={"name": "stock.bin", "url": "/uploads/o/stock.bin", "size": 10},
            vehicle_meta={"brand": "VW", "model": "Golf"},
            requested_options=["egr_off", "dpf_off", "egr_off"],
            order_id="O1",
        ).order

    def status_of(self, order_id="O1"):
        return self.lifecycle.store.get(order_id).status


class CreateOrderTests(LifecycleTestCase):
    def test_new_order_starts_uploaded_with_normalised_options(self):
        self.assertEqual(self.order.status, Order.Status.UPLOADED)
        self.assertEqual(self.order.requested_options, ["dpf_off", "egr_off"])
        self.assertEqual(self.order.payment_status, Order.PaymentStatus.UNPAID)
        self.assertEqual(self.order.result_file, {})
        self.assertIn(("O1", "received"), self.notifier.events)

    def test_missing_owner_or_file_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.create_order(owner_identity="", original_file={"name": "a.bin"})
        with self.assertRaises(ValidationError):
            self.lifecycle.create_order(owner_identity=OWNER, original_file={})

    def test_comments_are_bounded(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.create_order(
                owner_identity=OWNER, original_file={"name": "a.bin"}, comments="x" * 1001
            )

    def test_generated_ids_are_unique(self):
        ids = {new_order_id() for _ in range(50)}
        self.assertEqual(len(ids), 50)
        self.assertTrue(all(i.startswith("ord_") for i in ids))


class HappyPathTests(LifecycleTestCase):
    def test_full_lifecycle_then_rejection_fails_terminal(self):
        self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        self.assertEqual(self.status_of(), Order.Status.PAID)

        self.lifecycle.attach_result("O1", RESULT)
        self.assertEqual(self.status_of(), Order.Status.READY)

        self.lifecycle.confirm_delivery("O1", identity=OWNER)
        self.assertEqual(self.status_of(), Order.Status.DELIVERED)

        with self.assertRaises(TerminalState):
            self.lifecycle.reject("O1")
        self.assertEqual(self.status_of(), Order.Status.DELIVERED)
        self.assertEqual(
            [e for _, e in self.notifier.events], ["received", "paid", "ready", "delivered"]
        )

    def test_admin_override_attaches_result_without_payment(self):
        outcome = self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        self.assertEqual(outcome.order.status, Order.Status.READY)
        self.assertEqual(outcome.order.result_file["name"], "tuned.bin")
        self.assertIn("uploaded_at", outcome.order.result_file)
        self.assertEqual(outcome.order.payment_status, Order.PaymentStatus.UNPAID)


class PaymentTransitionTests(LifecycleTestCase):
    def test_confirm_payment_records_provider_and_id(self):
        order = self.lifecycle.confirm_payment("O1", "mercadopago", "123").order
        self.assertEqual(order.payment_provider, "mercadopago")
        self.assertEqual(order.external_payment_id, "123")
        self.assertEqual(order.payment_status, Order.PaymentStatus.APPROVED)

    def test_repeated_confirmation_is_a_no_op(self):
        first = self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        second = self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        self.assertTrue(first.changed)
        self.assertFalse(second.changed)
        self.assertIsNone(second.notified)
        self.assertEqual(second.order.version, first.order.version)
        self.assertEqual([e for _, e in self.notifier.events].count("paid"), 1)

    def test_second_provider_does_not_overwrite_first_payment(self):
        self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        outcome = self.lifecycle.confirm_payment("O1", "mercadopago", "999")
        self.assertFalse(outcome.changed)
        self.assertEqual(outcome.order.payment_provider, "paypal")

    def test_payment_after_override_is_recorded_without_moving_status(self):
        self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        outcome = self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        self.assertTrue(outcome.changed)
        self.assertEqual(outcome.order.status, Order.Status.READY)
        self.assertEqual(outcome.order.payment_status, Order.PaymentStatus.APPROVED)

    def test_payment_for_rejected_order_fails_terminal(self):
        self.lifecycle.reject("O1")
        with self.assertRaises(TerminalState):
            self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")

    def test_unknown_provider_is_invalid(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.confirm_payment("O1", "none", "x")

    def test_unknown_order_raises_not_found(self):
        with self.assertRaises(NotFound):
            self.lifecycle.confirm_payment("nope", "paypal", "PAY-1")


class ResultAndDeliveryTests(LifecycleTestCase):
    def test_attach_without_payment_needs_override(self):
        with self.assertRaises(InvalidTransition):
            self.lifecycle.attach_result("O1", RESULT)
        self.assertEqual(self.status_of(), Order.Status.UPLOADED)

    def test_attach_requires_a_file(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.attach_result("O1", {}, admin_override=True)

    def test_reattaching_overwrites_file_but_keeps_status(self):
        self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        self.lifecycle.attach_result("O1", RESULT)
        self.lifecycle.confirm_delivery("O1", identity=OWNER)
        outcome = self.lifecycle.attach_result("O1", {**RESULT, "name": "v2.bin"})
        self.assertEqual(outcome.order.status, Order.Status.DELIVERED)
        self.assertEqual(outcome.order.result_file["name"], "v2.bin")

    def test_delivery_before_ready_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            self.lifecycle.confirm_delivery("O1", identity=OWNER)

    def test_delivery_by_other_customer_is_forbidden(self):
        self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        with self.assertRaises(Forbidden):
            self.lifecycle.confirm_delivery("O1", identity="other@example.com")

    def test_admin_can_confirm_delivery(self):
        self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        outcome = self.lifecycle.confirm_delivery("O1", admin=True)
        self.assertEqual(outcome.order.status, Order.Status.DELIVERED)


class RejectionTests(LifecycleTestCase):
    def test_reject_from_ready_clears_result(self):
        self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        order = self.lifecycle.reject("O1").order
        self.assertEqual(order.status, Order.Status.REJECTED)
        self.assertEqual(order.result_file, {})

    def test_rejected_is_terminal_for_every_transition(self):
        self.lifecycle.reject("O1")
        with self.assertRaises(TerminalState):
            self.lifecycle.reject("O1")
        with self.assertRaises(TerminalState):
            self.lifecycle.attach_result("O1", RESULT, admin_override=True)
        with self.assertRaises(TerminalState):
            self.lifecycle.confirm_delivery("O1", admin=True)


class StatusNameTests(LifecycleTestCase):
    def test_legacy_names_map_to_uploaded(self):
        self.assertEqual(canonical_status("pending"), Order.Status.UPLOADED)
        self.assertEqual(canonical_status("in_progress"), Order.Status.UPLOADED)
        self.assertEqual(canonical_status("READY"), Order.Status.READY)
        with self.assertRaises(ValidationError):
            canonical_status("shipped")

    def test_set_status_routes_to_transitions(self):
        self.assertFalse(self.lifecycle.set_status("O1", "pending").changed)
        with self.assertRaises(InvalidTransition):
            self.lifecycle.set_status("O1", "paid")
        with self.assertRaises(InvalidTransition):
            self.lifecycle.set_status("O1", "ready")
        self.assertEqual(self.lifecycle.set_status("O1", "rejected").order.status, "rejected")

    def test_legacy_status_cannot_move_backwards(self):
        self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        with self.assertRaises(InvalidTransition):
            self.lifecycle.set_status("O1", "in_progress")
        self.assertEqual(self.status_of(), Order.Status.PAID)


class RatingTests(LifecycleTestCase):
    def make_ready(self):
        self.lifecycle.attach_result("O1", RESULT, admin_override=True)

    def test_rating_is_clamped(self):
        self.make_ready()
        self.assertEqual(self.lifecycle.set_rating("O1", OWNER, -3).order.rating, 0)
        self.assertEqual(self.lifecycle.set_rating("O1", OWNER, 9).order.rating, 5)
        self.assertEqual(clamp_rating(3), 3)

    def test_rating_with_feedback(self):
        self.make_ready()
        order = self.lifecycle.set_rating("O1", OWNER, 4, "Smooth power").order
        self.assertEqual((order.rating, order.feedback), (4, "Smooth power"))

    def test_non_owner_is_forbidden_in_every_status(self):
        for step in (None, "pay", "ready", "deliver"):
            if step == "pay":
                self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
            elif step == "ready":
                self.lifecycle.attach_result("O1", RESULT)
            elif step == "deliver":
                self.lifecycle.confirm_delivery("O1", identity=OWNER)
            with self.assertRaises(Forbidden):
                self.lifecycle.set_rating("O1", "other@example.com", 5)

    def test_rating_before_ready_is_invalid_state(self):
        with self.assertRaises(InvalidState):
            self.lifecycle.set_rating("O1", OWNER, 5)
        self.lifecycle.confirm_payment("O1", "paypal", "PAY-1")
        with self.assertRaises(InvalidState):
            self.lifecycle.set_rating("O1", OWNER, 5)

    def test_feedback_is_bounded(self):
        self.make_ready()
        with self.assertRaises(ValidationError):
            self.lifecycle.set_rating("O1", OWNER, 5, "x" * 2001)
