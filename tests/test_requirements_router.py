"""
Integration tests for the factory requirement endpoints
Run with: pytest tests/test_requirements_router.py -v
"""

from sqlalchemy import select

from src.api.models.requirement import Requirement
from tests.factories import auth_headers

REQUIREMENTS_URL = "/api/v1/requirements"


class TestRequirements:

    def test_browse_active(self, client, requirement):
        response = client.get(f"{REQUIREMENTS_URL}/")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["requirements"][0]["material_name"] == "Wheat"

    def test_filter_urgent(self, client, requirement):
        assert client.get(f"{REQUIREMENTS_URL}/", params={"urgent": True}).json()["total"] == 1
        assert client.get(f"{REQUIREMENTS_URL}/", params={"urgent": False}).json()["total"] == 0

    def test_get_requirement(self, client, requirement):
        response = client.get(f"{REQUIREMENTS_URL}/{requirement.id}")
        assert response.json()["factory_id"] == str(requirement.factory_id)

    def test_factory_posts_requirement(self, client, world, notifier):
        response = client.post(
            f"{REQUIREMENTS_URL}/",
            json={
                "material_name": "Groundnut",
                "category": "oilseeds",
                "quantity_needed": 5000,
                "unit": "kg",
                "price_willing": 62.0
            },
            headers=auth_headers(world.factory_id)
        )

        assert response.status_code == 201
        data = response.json()
        assert data["factory_id"] == str(world.factory_id)
        assert data["urgent"] is False
        assert data["active"] is True
        assert notifier.tables() == ["requirements"]

    def test_farmer_cannot_post(self, client, world, fetch):
        response = client.post(
            f"{REQUIREMENTS_URL}/",
            json={
                "material_name": "Groundnut",
                "category": "oilseeds",
                "quantity_needed": 5000,
                "unit": "kg",
                "price_willing": 62.0
            },
            headers=auth_headers(world.farmer_id)
        )

        assert response.status_code == 403
        assert fetch(select(Requirement)) == []

    def test_deactivated_requirement_hidden(self, client, world, requirement):
        response = client.put(
            f"{REQUIREMENTS_URL}/{requirement.id}",
            json={"active": False},
            headers=auth_headers(world.factory_id)
        )

        assert response.status_code == 200
        assert client.get(f"{REQUIREMENTS_URL}/").json()["total"] == 0
        assert client.get(f"{REQUIREMENTS_URL}/{requirement.id}").status_code == 404

        mine = client.get(f"{REQUIREMENTS_URL}/mine", headers=auth_headers(world.factory_id))
        assert mine.json()["total"] == 1

    def test_farmer_cannot_update(self, client, world, requirement):
        response = client.put(
            f"{REQUIREMENTS_URL}/{requirement.id}",
            json={"price_willing": 1.0},
            headers=auth_headers(world.farmer_id)
        )
        assert response.status_code == 404

    def test_owner_deletes(self, client, world, requirement, fetch):
        response = client.delete(f"{REQUIREMENTS_URL}/{requirement.id}", headers=auth_headers(world.factory_id))

        assert response.status_code == 204
        assert fetch(select(Requirement)) == []
