"""
API tests for person and relationship routes.

Person checks are resource-scoped, so the attribute rules (deceased persons,
linked persons, living persons in public trees) show up as 403 answers.
"""

import pytest


class TestPersonRoutes:
    """Tests for /persons and /trees/{tree_id}/persons"""

    @pytest.mark.asyncio
    async def test_viewer_reads_person(self, client, auth_headers):
        response = await client.get("/persons/living1", headers=auth_headers("viewer1"))

        assert response.status_code == 200
        body = response.json()
        assert body["first_name"] == "Ada"
        assert body["is_living"] is True

    @pytest.mark.asyncio
    async def test_missing_person(self, client, auth_headers):
        response = await client.get("/persons/ghost", headers=auth_headers("owner1"))

        assert response.status_code == 404
        assert response.json()["detail"] == "Person with id ghost not found"

    @pytest.mark.asyncio
    async def test_outsider_blocked_from_private_tree(self, client, auth_headers):
        response = await client.get("/persons/living1", headers=auth_headers("outsider1"))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_living_person_hidden_in_public_tree(self, client, auth_headers):
        response = await client.get("/persons/public-living", headers=auth_headers("outsider1"))
        assert response.status_code == 403
        assert response.json()["detail"] == "Permission denied: view_person"

        response = await client.get("/persons/public-deceased", headers=auth_headers("outsider1"))
        assert response.status_code == 200

        response = await client.get("/persons/public-living", headers=auth_headers("owner1"))
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_list_filters_hidden_persons(self, client, auth_headers):
        response = await client.get("/trees/public1/persons", headers=auth_headers("outsider1"))
        assert [p["id"] for p in response.json()] == ["public-deceased"]

        response = await client.get("/trees/public1/persons", headers=auth_headers("owner1"))
        assert sorted(p["id"] for p in response.json()) == ["public-deceased", "public-living"]

    @pytest.mark.asyncio
    async def test_editor_adds_person(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/persons",
            json={"first_name": "Anne", "last_name": "Blunt", "date_of_birth": "1837-09-22"},
            headers=auth_headers("editor1"),
        )

        assert response.status_code == 201
        assert response.json()["tree_id"] == "tree1"

    @pytest.mark.asyncio
    async def test_viewer_cannot_add_person(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/persons", json={"first_name": "Anne"}, headers=auth_headers("viewer1")
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_death_before_birth_rejected(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/persons",
            json={"first_name": "Anne", "date_of_birth": "1900-01-01", "date_of_death": "1800-01-01"},
            headers=auth_headers("owner1"),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_editor_cannot_edit_deceased_person(self, client, auth_headers):
        response = await client.patch(
            "/persons/deceased1", json={"biography": "Poet's wife"}, headers=auth_headers("editor1")
        )
        assert response.status_code == 403

        response = await client.patch(
            "/persons/living1", json={"biography": "Mathematician"}, headers=auth_headers("editor1")
        )
        assert response.status_code == 200
        assert response.json()["biography"] == "Mathematician"

    @pytest.mark.asyncio
    async def test_admin_edits_deceased_person(self, client, auth_headers):
        response = await client.patch(
            "/persons/deceased1", json={"biography": "Poet's wife"}, headers=auth_headers("admin1")
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_recording_a_death_restricts_editors(self, client, auth_headers):
        assert (await client.patch(
            "/persons/living1", json={"last_name": "Lovelace"}, headers=auth_headers("editor1")
        )).status_code == 200

        response = await client.patch(
            "/persons/living1", json={"date_of_death": "1852-11-27"}, headers=auth_headers("admin1")
        )
        assert response.json()["is_living"] is False

        assert (await client.patch(
            "/persons/living1", json={"last_name": "King"}, headers=auth_headers("editor1")
        )).status_code == 403

    @pytest.mark.asyncio
    async def test_delete_person(self, client, auth_headers):
        response = await client.delete("/persons/child1", headers=auth_headers("editor1"))
        assert response.status_code == 403

        response = await client.delete("/persons/child1", headers=auth_headers("admin1"))
        assert response.status_code == 204

        response = await client.get("/persons/child1", headers=auth_headers("admin1"))
        assert response.status_code == 404


class TestRelationshipRoutes:
    """Tests for relationship creation, editing and deletion"""

    @pytest.mark.asyncio
    async def test_create_normalizes_child_link(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "deceased1", "new_person_id": "living1", "type": "child"},
            headers=auth_headers("editor1"),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["type"] == "parent"
        assert body["from_person_id"] == "deceased1"
        assert body["to_person_id"] == "living1"
        assert body["created_by_id"] == "editor1"

    @pytest.mark.asyncio
    async def test_viewer_cannot_link(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "deceased1", "new_person_id": "living1", "type": "child"},
            headers=auth_headers("viewer1"),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_self_link(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "living1", "type": "sibling"},
            headers=auth_headers("owner1"),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Validation failed: Cannot create relationship with same person"

    @pytest.mark.asyncio
    async def test_cross_tree_link(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "public-living", "type": "spouse"},
            headers=auth_headers("owner1"),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_type(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "cousin"},
            headers=auth_headers("owner1"),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_and_cycle(self, client, auth_headers):
        headers = auth_headers("owner1")
        url = "/trees/tree1/relationships"

        assert (await client.post(url, json={
            "existing_person_id": "deceased1", "new_person_id": "living1", "type": "child",
        }, headers=headers)).status_code == 201
        assert (await client.post(url, json={
            "existing_person_id": "living1", "new_person_id": "child1", "type": "child",
        }, headers=headers)).status_code == 201

        response = await client.post(url, json={
            "existing_person_id": "living1", "new_person_id": "deceased1", "type": "spouse",
        }, headers=headers)
        assert response.status_code == 409
        assert response.json()["detail"] == (
            "Business rule violation: A relationship between these persons already exists"
        )

        response = await client.post(url, json={
            "existing_person_id": "deceased1", "new_person_id": "child1", "type": "parent",
        }, headers=headers)
        assert response.status_code == 409
        assert "impossible cycle" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_linked_person_cannot_be_deleted(self, client, auth_headers):
        """The cached denial is dropped once the relationship is removed"""
        headers = auth_headers("owner1")

        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "child"},
            headers=headers,
        )
        relationship_id = response.json()["id"]

        response = await client.delete("/persons/child1", headers=headers)
        assert response.status_code == 403

        response = await client.delete(f"/relationships/{relationship_id}", headers=headers)
        assert response.status_code == 204

        response = await client.delete("/persons/child1", headers=headers)
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_editor_cannot_delete_relationship(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "child"},
            headers=auth_headers("editor1"),
        )
        relationship_id = response.json()["id"]

        response = await client.delete(f"/relationships/{relationship_id}", headers=auth_headers("editor1"))
        assert response.status_code == 403

        response = await client.delete(f"/relationships/{relationship_id}", headers=auth_headers("admin1"))
        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_delete_missing_relationship(self, client, auth_headers):
        response = await client.delete("/relationships/nope", headers=auth_headers("owner1"))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_parent_gender_sets_stored_type(self, client, auth_headers):
        headers = auth_headers("owner1")
        response = await client.patch("/persons/living1", json={"gender": "female"}, headers=headers)
        assert response.status_code == 200

        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "child"},
            headers=headers,
        )

        assert response.status_code == 201
        assert response.json()["type"] == "mother"

    @pytest.mark.asyncio
    async def test_gender_change_retypes_parent_links(self, client, auth_headers):
        headers = auth_headers("owner1")
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "child"},
            headers=headers,
        )
        assert response.json()["type"] == "parent"
        relationship_id = response.json()["id"]

        response = await client.patch("/persons/living1", json={"gender": "male"}, headers=headers)
        assert response.status_code == 200

        response = await client.patch(
            f"/relationships/{relationship_id}", json={"notes": "checked"}, headers=headers
        )
        assert response.json()["type"] == "father"

    @pytest.mark.asyncio
    async def test_editor_updates_relationship(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "sibling"},
            headers=auth_headers("editor1"),
        )
        relationship_id = response.json()["id"]

        response = await client.patch(
            f"/relationships/{relationship_id}",
            json={"type": "spouse", "notes": "  eloped "},
            headers=auth_headers("editor1"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "spouse"
        assert body["notes"] == "eloped"

    @pytest.mark.asyncio
    async def test_viewer_cannot_update_relationship(self, client, auth_headers):
        response = await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "sibling"},
            headers=auth_headers("owner1"),
        )
        relationship_id = response.json()["id"]

        response = await client.patch(
            f"/relationships/{relationship_id}", json={"notes": "x"}, headers=auth_headers("viewer1")
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_missing_relationship(self, client, auth_headers):
        response = await client.patch("/relationships/nope", json={"notes": "x"}, headers=auth_headers("owner1"))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_family_members(self, client, auth_headers):
        headers = auth_headers("owner1")
        await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "deceased1", "new_person_id": "living1", "type": "child"},
            headers=headers,
        )
        await client.post(
            "/trees/tree1/relationships",
            json={"existing_person_id": "living1", "new_person_id": "child1", "type": "child"},
            headers=headers,
        )

        response = await client.get("/persons/living1/family", headers=auth_headers("viewer1"))

        assert response.status_code == 200
        body = response.json()
        assert [p["id"] for p in body["parents"]] == ["deceased1"]
        assert [p["id"] for p in body["children"]] == ["child1"]
        assert body["spouses"] == []
        assert body["siblings"] == []

    @pytest.mark.asyncio
    async def test_family_hides_living_relatives_in_public_tree(self, client, auth_headers):
        response = await client.post(
            "/trees/public1/relationships",
            json={"existing_person_id": "public-deceased", "new_person_id": "public-living", "type": "sibling"},
            headers=auth_headers("owner1"),
        )
        assert response.status_code == 201

        response = await client.get("/persons/public-deceased/family", headers=auth_headers("outsider1"))
        assert response.status_code == 200
        assert response.json()["siblings"] == []

        response = await client.get("/persons/public-living/family", headers=auth_headers("outsider1"))
        assert response.status_code == 403

        response = await client.get("/persons/public-deceased/family", headers=auth_headers("owner1"))
        assert [p["id"] for p in response.json()["siblings"]] == ["public-living"]
