"""
HTTP tests for the floor endpoints: tables, sessions and order items.
"""

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from rest_api.models import Order, OrderItem
from shared.security.auth import sign_staff_token


def _base(location):
    return f"/api/locations/{location.id}"


def _state(*lines, guest_count=2):
    return {"guestCount": guest_count, "seats": [{"number": 1, "items": list(lines)}], "tableItems": []}


def _line(name, price="10.00", status="held", wave=1):
    return {"name": name, "price": price, "status": status, "waveNumber": wave}


def _headers(ctx):
    return {"Authorization": f"Bearer {sign_staff_token(ctx['user_id'], ctx['location_ids'], ctx['roles'])}"}


class TestTableAuth:
    """Bearer tokens, roles and location scoping."""

    def test_missing_token(self, client, seed_location, seed_table):
        response = client.get(f"{_base(seed_location)}/tables/T5/order")

        assert response.status_code == 401

    def test_other_location(self, client, seed_location, seed_table, other_location, auth_headers):
        response = client.put(
            f"{_base(other_location)}/tables/T5/order", json=_state(), headers=auth_headers
        )

        assert response.status_code == 403

    def test_kitchen_cannot_seat(self, client, seed_location, seed_table, kitchen_ctx):
        response = client.post(
            f"{_base(seed_location)}/tables/T5/seat", json={"guest_count": 2}, headers=_headers(kitchen_ctx)
        )

        assert response.status_code == 403

    def test_non_json_body_is_rejected(self, client, seed_location, seed_table, auth_headers):
        response = client.put(
            f"{_base(seed_location)}/tables/T5/order",
            content="guests=2",
            headers={**auth_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 415


class TestTableFlow:
    """Seat, sync, read and advance through the API."""

    def test_seat_then_read(self, client, seed_location, seed_table, auth_headers):
        seated = client.post(f"{_base(seed_location)}/tables/T5/seat", json={"guest_count": 3}, headers=auth_headers)

        assert seated.status_code == 201
        view = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json()
        assert view["session_id"] == seated.json()["session_id"]
        assert view["guest_count"] == 3
        assert view["items"] == []

    def test_seat_unknown_table(self, client, seed_location, seed_table, auth_headers):
        response = client.post(f"{_base(seed_location)}/tables/T99/seat", json={"guest_count": 2}, headers=auth_headers)

        assert response.status_code == 404

    def test_empty_table_reads_null(self, client, seed_location, seed_table, auth_headers):
        response = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() is None

    def test_sync_and_read_back(self, client, seed_location, seed_table, auth_headers):
        synced = client.put(
            f"{_base(seed_location)}/tables/T5/order",
            json=_state(_line("Soup", "7.50"), _line("Fish", "19.00", wave=2)),
            headers=auth_headers,
        )

        assert synced.status_code == 200
        assert synced.json()["ok"] is True
        view = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json()
        assert [(i["name"], i["price"]) for i in view["items"]] == [("Soup", 7.5), ("Fish", 19.0)]

    def test_sync_unknown_table(self, client, seed_location, seed_table, auth_headers):
        response = client.put(f"{_base(seed_location)}/tables/T99/order", json=_state(), headers=auth_headers)

        assert response.status_code == 404

    def test_advance_wave_partial_failure(self, client, seed_location, seed_table, auth_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order",
            json=_state(_line("Apple Tart", status="ready"), _line("Burger")),
            headers=auth_headers,
        )

        response = client.post(
            f"{_base(seed_location)}/tables/T5/waves/1/advance", json={"status": "served"}, headers=auth_headers
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["reason"] == "advance_failed"
        assert detail["advanced"] == 1
        assert "item_id" in detail

    def test_advance_wave_rejects_unknown_status(self, client, seed_location, seed_table, auth_headers):
        response = client.post(
            f"{_base(seed_location)}/tables/T5/waves/1/advance", json={"status": "cooking"}, headers=auth_headers
        )

        assert response.status_code == 422


class TestCloseTable:
    def test_unfinished_items_conflict(self, client, seed_location, seed_table, auth_headers):
        client.put(f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup")), headers=auth_headers)

        response = client.post(
            f"{_base(seed_location)}/tables/T5/close",
            json={"payment": {"amount": "10.00"}},
            headers=auth_headers,
        )

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["reason"] == "unfinished_items"
        assert [i["item_name"] for i in detail["items"]] == ["Soup"]

    def test_unpaid_balance_conflict(self, client, seed_location, seed_table, auth_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup", status="served")), headers=auth_headers
        )

        response = client.post(
            f"{_base(seed_location)}/tables/T5/close", json={"payment": {"amount": "4.00"}}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"]["remaining"] == 6.0

    def test_negative_tip_is_a_bad_request(self, client, seed_location, seed_table, auth_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup", status="served")), headers=auth_headers
        )

        response = client.post(
            f"{_base(seed_location)}/tables/T5/close",
            json={"payment": {"amount": "10.00", "tip_amount": "-1.00"}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "invalid_tip"

    def test_paid_close(self, client, seed_location, seed_table, auth_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup", status="served")), headers=auth_headers
        )

        response = client.post(
            f"{_base(seed_location)}/tables/T5/close",
            json={"payment": {"amount": "10.00", "tip_amount": "2.00", "method": "card"}},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json() is None

    def test_server_cannot_force(self, client, seed_location, seed_table, auth_headers):
        client.put(f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup")), headers=auth_headers)

        response = client.post(f"{_base(seed_location)}/tables/T5/close", json={"force": True}, headers=auth_headers)

        assert response.status_code == 403

    def test_manager_force_close(self, client, seed_location, seed_table, auth_headers, manager_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order",
            json=_state(_line("Soup"), _line("Steak", status="cooking")),
            headers=auth_headers,
        )

        response = client.post(
            f"{_base(seed_location)}/tables/T5/close", json={"force": True}, headers=manager_headers
        )

        assert response.status_code == 200
        assert response.json()["voided_items"] == 2


class TestSessionEndpoints:
    def _seat(self, client, location, headers, guests=2):
        response = client.post(f"{_base(location)}/tables/T5/seat", json={"guest_count": guests}, headers=headers)
        return response.json()["session_id"]

    def test_seats_add_and_conflict(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)
        url = f"{_base(seed_location)}/sessions/{session_id}/seats"

        added = client.post(url, headers=auth_headers)
        duplicate = client.post(url, params={"seat_number": 1}, headers=auth_headers)
        seats = client.get(url, headers=auth_headers).json()

        assert added.status_code == 201
        assert added.json()["seat_number"] == 3
        assert duplicate.status_code == 409
        assert duplicate.json()["detail"]["reason"] == "seat_exists"
        assert [s["seat_number"] for s in seats] == [1, 2, 3]

    def test_remove_seat(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)
        url = f"{_base(seed_location)}/sessions/{session_id}/seats"
        seat_id = client.get(url, headers=auth_headers).json()[1]["id"]

        response = client.delete(f"{url}/{seat_id}", headers=auth_headers)

        assert response.status_code == 204
        assert len(client.get(url, headers=auth_headers).json()) == 1

    def test_remove_seat_by_number(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)
        url = f"{_base(seed_location)}/sessions/{session_id}/seats"

        removed = client.delete(f"{url}/by-number/2", headers=auth_headers)
        missing = client.delete(f"{url}/by-number/9", headers=auth_headers)

        assert removed.status_code == 204
        assert missing.status_code == 404
        assert [s["seat_number"] for s in client.get(url, headers=auth_headers).json()] == [1]

    def test_rename_seat_by_number(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)
        url = f"{_base(seed_location)}/sessions/{session_id}/seats"

        renamed = client.put(f"{url}/by-number/2", json={"new_seat_number": 5}, headers=auth_headers)

        assert renamed.status_code == 200
        assert renamed.json()["seat_number"] == 5
        assert [s["seat_number"] for s in client.get(url, headers=auth_headers).json()] == [1, 5]

    def test_rename_to_seat_zero_is_a_bad_request(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)

        response = client.put(
            f"{_base(seed_location)}/sessions/{session_id}/seats/by-number/1",
            json={"new_seat_number": 0},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "invalid_seat_number"

    def test_guest_count_and_events(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)
        base = f"{_base(seed_location)}/sessions/{session_id}"

        updated = client.put(f"{base}/guest-count", json={"guest_count": 5}, headers=auth_headers)
        events = client.get(f"{base}/events", headers=auth_headers).json()

        assert updated.status_code == 200
        types = [e["type"] for e in events]
        assert types[0] == "session_opened"
        assert "guest_count_adjusted" in types

    def test_session_seen_through_wrong_location(self, client, seed_location, seed_table, other_location, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)

        response = client.get(f"{_base(other_location)}/sessions/{session_id}/seats", headers=auth_headers)

        assert response.status_code == 404

    def test_create_and_fire_wave(self, client, seed_location, seed_table, auth_headers):
        session_id = self._seat(client, seed_location, auth_headers)

        created = client.post(f"{_base(seed_location)}/sessions/{session_id}/waves", headers=auth_headers)
        order_id = created.json()["order"]["id"]
        fired = client.post(f"{_base(seed_location)}/orders/{order_id}/fire", headers=auth_headers)
        refired = client.post(f"{_base(seed_location)}/orders/{order_id}/fire", headers=auth_headers)

        assert created.status_code == 201
        assert created.json()["order"]["wave"] == 1
        assert fired.status_code == 200
        assert refired.status_code == 409
        assert refired.json()["detail"]["reason"] == "wave_already_fired"

    def test_close_check(self, client, seed_location, seed_table, auth_headers):
        client.put(f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Soup")), headers=auth_headers)
        view = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json()

        check = client.get(
            f"{_base(seed_location)}/sessions/{view['session_id']}/close-check", headers=auth_headers
        ).json()

        assert check["can_close"] is False
        assert check["reason"] == "unfinished_items"


class TestOrderItemEndpoints:
    def _soup_id(self, client, db_session, location, headers):
        client.put(f"{_base(location)}/tables/T5/order", json=_state(_line("Soup")), headers=headers)
        return db_session.scalars(select(OrderItem.id)).one()

    def test_kitchen_moves_an_item(self, client, db_session, seed_location, seed_table, auth_headers, kitchen_ctx):
        soup_id = self._soup_id(client, db_session, seed_location, auth_headers)

        response = client.post(
            f"{_base(seed_location)}/order-items/{soup_id}/preparing", headers=_headers(kitchen_ctx)
        )

        assert response.status_code == 200

    def test_invalid_transition_conflict(self, client, db_session, seed_location, seed_table, auth_headers):
        soup_id = self._soup_id(client, db_session, seed_location, auth_headers)

        response = client.post(f"{_base(seed_location)}/order-items/{soup_id}/served", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "invalid_transition"

    def test_void_then_void_again(self, client, db_session, seed_location, seed_table, auth_headers):
        soup_id = self._soup_id(client, db_session, seed_location, auth_headers)
        url = f"{_base(seed_location)}/order-items/{soup_id}/void"

        first = client.post(url, json={"reason": "changed mind"}, headers=auth_headers)
        second = client.post(url, json={}, headers=auth_headers)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["detail"]["reason"] == "already_voided"
        order = db_session.scalars(select(Order)).one()
        db_session.refresh(order)
        assert order.total == 0

    def test_refire_then_refire_again(self, client, db_session, seed_location, seed_table, auth_headers):
        soup_id = self._soup_id(client, db_session, seed_location, auth_headers)
        url = f"{_base(seed_location)}/order-items/{soup_id}/refire"

        first = client.post(url, json={"reason": "dropped"}, headers=auth_headers)
        second = client.post(url, json={}, headers=auth_headers)

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["detail"]["reason"] == "already_refired"

    def test_move_unsent_item_to_another_seat(self, client, db_session, seed_location, seed_table, auth_headers):
        client.put(
            f"{_base(seed_location)}/tables/T5/order", json=_state(_line("Cake", wave=2)), headers=auth_headers
        )
        cake_id = db_session.scalars(select(OrderItem.id)).one()
        session_id = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json()["session_id"]
        seats = client.get(f"{_base(seed_location)}/sessions/{session_id}/seats", headers=auth_headers).json()

        response = client.put(
            f"{_base(seed_location)}/order-items/{cake_id}/seat", json={"seat_id": seats[1]["id"]}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["seat_number"] == 2

    def test_move_sent_item_conflict(self, client, db_session, seed_location, seed_table, auth_headers):
        soup_id = self._soup_id(client, db_session, seed_location, auth_headers)
        session_id = client.get(f"{_base(seed_location)}/tables/T5/order", headers=auth_headers).json()["session_id"]
        seats = client.get(f"{_base(seed_location)}/sessions/{session_id}/seats", headers=auth_headers).json()

        response = client.put(
            f"{_base(seed_location)}/order-items/{soup_id}/seat", json={"seat_id": seats[1]["id"]}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"]["reason"] == "item_sent_to_kitchen"


class TestStorageFailures:
    def test_fire_commit_failure_is_a_500(self, client, db_session, seed_location, seed_table, auth_headers, monkeypatch):
        seated = client.post(f"{_base(seed_location)}/tables/T5/seat", json={"guest_count": 2}, headers=auth_headers)
        created = client.post(
            f"{_base(seed_location)}/sessions/{seated.json()['session_id']}/waves", headers=auth_headers
        )

        def broken_commit():
            raise OperationalError("COMMIT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "commit", broken_commit)
        response = client.post(
            f"{_base(seed_location)}/orders/{created.json()['order']['id']}/fire", headers=auth_headers
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fire wave"
        assert "connection lost" not in response.text

    def test_unhandled_storage_error_is_a_generic_500(self, client, db_session, seed_location, seed_table, auth_headers, monkeypatch):
        seated = client.post(f"{_base(seed_location)}/tables/T5/seat", json={"guest_count": 2}, headers=auth_headers)

        def broken_scalars(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection lost"))

        monkeypatch.setattr(db_session, "scalars", broken_scalars)
        response = client.get(
            f"{_base(seed_location)}/sessions/{seated.json()['session_id']}/seats", headers=auth_headers
        )

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Database error during GET")
        assert "connection lost" not in response.text
