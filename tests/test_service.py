"""End-to-end tests for the users HTTP API."""

from __future__ import annotations

import json
import unittest
import uuid
import warnings
from xml.etree import ElementTree

from fastapi.testclient import TestClient

from usersapi.config import SeedUser, ServiceSettings
from usersapi.repository import InMemoryUserRepository
from usersapi.service import create_app


class UsersServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.repository = InMemoryUserRepository()
        self.app = create_app(repository=self.repository)
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()

    def _create(self, login: str, first_name: str = "Ada", last_name: str = "Lovelace") -> str:
        response = self.client.post(
            "/api/users",
            json={"login": login, "firstName": first_name, "lastName": last_name},
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_healthcheck(self) -> None:
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_create_then_read(self) -> None:
        response = self.client.post(
            "/api/users",
            json={"login": "ada", "firstName": "Ada", "lastName": "Lovelace"},
        )
        self.assertEqual(response.status_code, 201, response.text)
        user_id = response.json()
        self.assertEqual(response.headers["location"], f"http://testserver/api/users/{user_id}")

        fetched = self.client.get(f"/api/users/{user_id}")
        self.assertEqual(fetched.status_code, 200, fetched.text)
        self.assertEqual(
            fetched.json(),
            {
                "id": user_id,
                "login": "ada",
                "fullName": "Lovelace Ada",
                "gamesPlayed": 0,
                "currentGameId": None,
            },
        )

    def test_create_defaults_names(self) -> None:
        user_id = self.client.post("/api/users", json={"login": "anon"}).json()

        fetched = self.client.get(f"/api/users/{user_id}")
        self.assertEqual(fetched.json()["fullName"], "Doe John")

    def test_create_rejects_invalid_login(self) -> None:
        response = self.client.post("/api/users", json={"login": "ada lovelace"})

        self.assertEqual(response.status_code, 422, response.text)
        detail = response.json()["detail"]
        self.assertEqual(detail["errors"], {"login": ["Login should contain only letters or digits"]})
        self.assertEqual(self.repository.count(), 0)

    def test_create_without_body_is_bad_request(self) -> None:
        self.assertEqual(self.client.post("/api/users").status_code, 400)
        self.assertEqual(
            self.client.post(
                "/api/users", content=b"{not json", headers={"Content-Type": "application/json"}
            ).status_code,
            400,
        )
        self.assertEqual(self.client.post("/api/users", json=["ada"]).status_code, 400)

    def test_create_with_wrong_field_type_is_unprocessable(self) -> None:
        response = self.client.post("/api/users", json={"login": 42})

        self.assertEqual(response.status_code, 422, response.text)
        self.assertIn("login", response.json()["detail"]["errors"])

    def test_field_type_and_rule_errors_are_reported_together(self) -> None:
        user_id = str(uuid.uuid4())

        replaced = self.client.put(
            f"/api/users/{user_id}",
            json={"login": "bad login", "firstName": 5, "lastName": "X"},
        )
        self.assertEqual(replaced.status_code, 422, replaced.text)
        errors = replaced.json()["detail"]["errors"]
        self.assertEqual(set(errors), {"login", "firstName"})
        self.assertEqual(errors["login"], ["Login should contain only letters or digits"])

        missing_names = self.client.put(f"/api/users/{user_id}", json={"login": 7})
        self.assertEqual(
            set(missing_names.json()["detail"]["errors"]),
            {"login", "firstName", "lastName"},
        )

        created = self.client.post("/api/users", json={"login": "bad login", "lastName": []})
        self.assertEqual(created.status_code, 422, created.text)
        self.assertEqual(set(created.json()["detail"]["errors"]), {"login", "lastName"})
        self.assertEqual(self.repository.count(), 0)

    def test_unprocessable_response_raises_no_deprecation_warning(self) -> None:
        with warnings.catch_warnings():
            warnings.filterwarnings("error", message=".*HTTP_422", category=DeprecationWarning)
            with TestClient(create_app()) as client:
                response = client.post("/api/users", json={"login": "bad login"})

        self.assertEqual(response.status_code, 422)

    def test_get_unknown_user(self) -> None:

        self.assertEqual(self.client.get(f"/api/users/{uuid.uuid4()}").status_code, 404)
        self.assertEqual(self.client.get("/api/users/not-a-guid").status_code, 404)

    def test_head_returns_headers_only(self) -> None:
        user_id = self._create("ada")

        response = self.client.head(f"/api/users/{user_id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"")
        self.assertTrue(response.headers["content-type"].startswith("application/json"))
        self.assertGreater(int(response.headers["content-length"]), 0)
        self.assertEqual(self.client.head(f"/api/users/{uuid.uuid4()}").status_code, 404)

    def test_xml_and_not_acceptable(self) -> None:
        user_id = self._create("ada")

        xml = self.client.get(f"/api/users/{user_id}", headers={"Accept": "application/xml"})
        self.assertEqual(xml.status_code, 200)
        self.assertTrue(xml.headers["content-type"].startswith("application/xml"))
        document = ElementTree.fromstring(xml.content)
        self.assertEqual(document.tag, "UserDto")
        self.assertEqual(document.find("fullName").text, "Lovelace Ada")

        refused = self.client.get(f"/api/users/{user_id}", headers={"Accept": "text/html"})
        self.assertEqual(refused.status_code, 406)

        refused_create = self.client.post(
            "/api/users", json={"login": "grace"}, headers={"Accept": "image/png"}
        )
        self.assertEqual(refused_create.status_code, 406)
        self.assertEqual(self.repository.count(), 1)

    def test_put_creates_then_updates(self) -> None:
        user_id = str(uuid.uuid4())
        body = {"login": "grace", "firstName": "Grace", "lastName": "Hopper"}

        created = self.client.put(f"/api/users/{user_id}", json=body)
        self.assertEqual(created.status_code, 201, created.text)
        self.assertEqual(created.json(), user_id)
        self.assertEqual(created.headers["location"], f"http://testserver/api/users/{user_id}")

        updated = self.client.put(
            f"/api/users/{user_id}",
            json={"login": "amazing", "firstName": "Amazing", "lastName": "Grace"},
        )
        self.assertEqual(updated.status_code, 204, updated.text)
        self.assertEqual(updated.content, b"")

        fetched = self.client.get(f"/api/users/{user_id}").json()
        self.assertEqual(fetched["login"], "amazing")
        self.assertEqual(fetched["fullName"], "Grace Amazing")
        self.assertEqual(self.repository.count(), 1)

    def test_put_validation(self) -> None:
        user_id = str(uuid.uuid4())

        missing = self.client.put(f"/api/users/{user_id}", json={"login": "grace"})
        self.assertEqual(missing.status_code, 422, missing.text)
        self.assertEqual(
            set(missing.json()["detail"]["errors"]),
            {"firstName", "lastName"},
        )

        bad_login = self.client.put(
            f"/api/users/{user_id}",
            json={"login": "gr@ce", "firstName": "Grace", "lastName": "Hopper"},
        )
        self.assertEqual(bad_login.status_code, 422)
        self.assertIn("login", bad_login.json()["detail"]["errors"])

        self.assertEqual(self.client.put(f"/api/users/{user_id}").status_code, 400)
        self.assertEqual(
            self.client.put(
                f"/api/users/{uuid.UUID(int=0)}",
                json={"login": "grace", "firstName": "Grace", "lastName": "Hopper"},
            ).status_code,
            400,
        )
        self.assertEqual(
            self.client.put(
                "/api/users/not-a-guid",
                json={"login": "grace", "firstName": "Grace", "lastName": "Hopper"},
            ).status_code,
            400,
        )
        self.assertEqual(self.repository.count(), 0)

    def test_patch(self) -> None:
        user_id = self._create("ada")

        response = self.client.patch(f"/api/users/{user_id}", json={"lastName": "King"})
        self.assertEqual(response.status_code, 204, response.text)
        self.assertEqual(self.client.get(f"/api/users/{user_id}").json()["fullName"], "King Ada")

        invalid = self.client.patch(f"/api/users/{user_id}", json={"login": "ada king"})
        self.assertEqual(invalid.status_code, 422)
        self.assertIn("login", invalid.json()["detail"]["errors"])
        self.assertEqual(self.client.get(f"/api/users/{user_id}").json()["login"], "ada")

        merge_patch = self.client.patch(
            f"/api/users/{user_id}",
            content=json.dumps({"firstName": "Augusta"}),
            headers={"Content-Type": "application/merge-patch+json"},
        )
        self.assertEqual(merge_patch.status_code, 204, merge_patch.text)
        self.assertEqual(
            self.client.get(f"/api/users/{user_id}").json()["fullName"], "King Augusta"
        )

    def test_patch_failures(self) -> None:
        user_id = self._create("ada")

        self.assertEqual(self.client.patch(f"/api/users/{user_id}").status_code, 400)
        self.assertEqual(
            self.client.patch(f"/api/users/{uuid.uuid4()}", json={"login": "x"}).status_code,
            404,
        )
        self.assertEqual(self.repository.count(), 1)

    def test_delete(self) -> None:
        user_id = self._create("ada")

        deleted = self.client.delete(f"/api/users/{user_id}")
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get(f"/api/users/{user_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/users/{user_id}").status_code, 404)

    def test_list_pages(self) -> None:
        ids = [self._create(login) for login in ("a", "b", "c")]

        first = self.client.get("/api/users", params={"pageNumber": 1, "pageSize": 2})
        self.assertEqual(first.status_code, 200, first.text)
        self.assertEqual([user["id"] for user in first.json()], ids[:2])
        pagination = json.loads(first.headers["x-pagination"])
        self.assertEqual(
            pagination,
            {
                "previousPageLink": None,
                "nextPageLink": "http://testserver/api/users?pageNumber=2&pageSize=2",
                "totalCount": 3,
                "pageSize": 2,
                "currentPage": 1,
                "totalPages": 2,
            },
        )

        second = self.client.get(pagination["nextPageLink"])
        self.assertEqual([user["id"] for user in second.json()], ids[2:])
        pagination = json.loads(second.headers["x-pagination"])
        self.assertIsNone(pagination["nextPageLink"])
        self.assertEqual(
            pagination["previousPageLink"], "http://testserver/api/users?pageNumber=1&pageSize=2"
        )

    def test_list_clamps_parameters(self) -> None:
        for login in ("a", "b"):
            self._create(login)

        tiny = self.client.get("/api/users", params={"pageNumber": 0, "pageSize": 0})
        pagination = json.loads(tiny.headers["x-pagination"])
        self.assertEqual((pagination["currentPage"], pagination["pageSize"]), (1, 1))
        self.assertEqual(len(tiny.json()), 1)

        huge = self.client.get("/api/users", params={"pageNumber": -5, "pageSize": 1000})
        pagination = json.loads(huge.headers["x-pagination"])
        self.assertEqual((pagination["currentPage"], pagination["pageSize"]), (1, 20))

        default = self.client.get("/api/users")
        pagination = json.loads(default.headers["x-pagination"])
        self.assertEqual(pagination["pageSize"], 10)

    def test_list_as_xml(self) -> None:
        self._create("ada")

        response = self.client.get("/api/users", headers={"Accept": "application/xml"})

        document = ElementTree.fromstring(response.content)
        self.assertEqual(document.tag, "ArrayOfUserDto")
        self.assertEqual(document[0].find("login").text, "ada")

    def test_options(self) -> None:
        response = self.client.options("/api/users")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["allow"], "POST, GET, OPTIONS")

    def test_openapi_documents_users_routes(self) -> None:
        schema = self.client.get("/openapi.json").json()

        self.assertIn("/api/users", schema["paths"])
        self.assertIn("/api/users/{user_id}", schema["paths"])
        self.assertEqual(
            set(schema["paths"]["/api/users/{user_id}"]),
            {"get", "head", "put", "patch", "delete"},
        )


class SeededServiceTests(unittest.TestCase):
    def test_seed_users_are_loaded(self) -> None:
        user_id = uuid.uuid4()
        settings = ServiceSettings(
            seed_users=(
                SeedUser(login="admin", first_name="Ada", last_name="Lovelace", id=user_id),
                SeedUser(login="guest"),
            )
        )
        app = create_app(settings=settings)

        with TestClient(app) as client:
            seeded = client.get(f"/api/users/{user_id}")
            self.assertEqual(seeded.status_code, 200, seeded.text)
            self.assertEqual(seeded.json()["login"], "admin")

            listing = client.get("/api/users").json()
            self.assertEqual([user["login"] for user in listing], ["admin", "guest"])
            self.assertEqual(listing[1]["fullName"], "Doe John")

    def test_invalid_seed_user_is_rejected(self) -> None:
        settings = ServiceSettings(seed_users=(SeedUser(login="not valid"),))

        with self.assertRaises(ValueError):
            create_app(settings=settings)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
