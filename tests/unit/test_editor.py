"""Tests for AdminPermissionEditor orchestration."""

import httpx
import pytest
import pytest_asyncio

from conftest import admin_row, envelope

from license_console.access.editor import SUPER_ADMIN_MESSAGE, AdminPermissionEditor
from license_console.access.models import ResourceAccessMode, ResourceType
from license_console.access.permission_catalog import PermissionCatalogService
from license_console.access.resource_catalog import ResourceCatalogService
from license_console.access.state_store import AdminResourceStateStore
from license_console.client.schemas import AdminRecord

pytestmark = pytest.mark.asyncio

ADMIN = "admin-2"
PUT_PATH = f"/api/admin/admins/{ADMIN}/permissions"


@pytest.fixture
def store():
    return AdminResourceStateStore()


@pytest.fixture
def editor(api_client, store):
    return AdminPermissionEditor(
        api_client,
        PermissionCatalogService(api_client),
        ResourceCatalogService(api_client),
        store,
    )


@pytest_asyncio.fixture
async def opened(editor, sample_admin):
    await editor.load_for_admin(ADMIN, sample_admin)
    return editor


def _echo(permissions, resource_permissions):
    return envelope({"permissions": permissions, "resource_permissions": resource_permissions})


# ---------------------------------------------------------------------------
# load_for_admin
# ---------------------------------------------------------------------------


class TestLoadForAdmin:

    async def test_hydrates_and_prechecks(self, editor, sample_admin, store):
        profile = await editor.load_for_admin(ADMIN, sample_admin)

        assert editor.active_admin_id == ADMIN
        assert profile.functional_permissions == {"licenses.view", "products.view"}
        assert store.is_loaded_from_server(ADMIN)
        assert store.get_policy(ADMIN, "licenses").selected_ids == {"L2"}
        assert store.get_policy(ADMIN, "policies").mode is ResourceAccessMode.NONE
        assert editor.catalog_error is None

    async def test_checklist_follows_catalog_order(self, opened):
        checklist = opened.checklist()

        assert list(checklist)[:3] == ["dashboard.view", "licenses.view", "licenses.manage"]
        assert checklist["licenses.view"] is True
        assert checklist["licenses.manage"] is False

    async def test_without_profile_leaves_defaults(self, editor, store):
        profile = await editor.load_for_admin(ADMIN)

        assert profile.functional_permissions == set()
        assert store.is_loaded_from_server(ADMIN) is False
        assert store.serialize(ADMIN)["licenses"] == {"mode": "all", "selected_ids": []}

    async def test_uses_admin_list_as_cache(self, editor, backend, store):
        backend.add("GET", "/api/admin/admins", envelope([
            admin_row(ADMIN, permissions=["policies.view"], resource_permissions={
                "products": {"mode": "own"},
            }),
        ]))
        await editor.refresh_admins()

        profile = await editor.load_for_admin(ADMIN)

        assert profile.functional_permissions == {"policies.view"}
        assert store.get_policy(ADMIN, "products").mode is ResourceAccessMode.OWN

    async def test_catalog_failure_does_not_abort(self, editor, backend, sample_admin):
        backend.add(
            "GET", "/api/admin/permissions/catalog",
            envelope(status="error", message="catalog unavailable"), status_code=500,
        )

        profile = await editor.load_for_admin(ADMIN, sample_admin)

        assert "permission catalog" in editor.catalog_error
        assert profile.functional_permissions == {"licenses.view", "products.view"}

    async def test_catalog_connection_reset_does_not_abort(self, editor, backend, sample_admin):
        def reset(request):
            raise httpx.ReadError("connection reset", request=request)

        backend.add("GET", "/api/admin/permissions/catalog", handler=reset)

        profile = await editor.load_for_admin(ADMIN, sample_admin)

        assert "ReadError" in editor.catalog_error
        assert editor.active_admin_id == ADMIN
        assert profile.functional_permissions == {"licenses.view", "products.view"}

    async def test_reload_without_resource_policies_resets_edits(self, editor, store):
        await editor.load_for_admin(ADMIN)
        editor.set_resource_mode("licenses", "none")

        await editor.load_for_admin(ADMIN)

        assert store.get_policy(ADMIN, "licenses").mode is ResourceAccessMode.ALL

    async def test_catalog_loaded_once_across_admins(self, editor, backend, sample_admin):
        await editor.load_for_admin(ADMIN, sample_admin)
        await editor.load_for_admin("admin-3")

        assert backend.count("GET", "/api/admin/permissions/catalog") == 1

    async def test_refresh_admins_failure_keeps_previous(self, editor, backend):
        backend.add("GET", "/api/admin/admins", envelope([admin_row(ADMIN)]))
        await editor.refresh_admins()
        backend.add("GET", "/api/admin/admins", envelope(status="error"), status_code=500)

        admins = await editor.refresh_admins()

        assert [a.id for a in admins] == [ADMIN]
        assert editor.admins_error is not None


# ---------------------------------------------------------------------------
# Editing and sessions
# ---------------------------------------------------------------------------


class TestEditing:

    async def test_collect_functional_permissions(self, opened):
        opened.set_permission("licenses.manage", True)
        opened.toggle_permission("products.view")

        assert opened.collect_functional_permissions() == ["licenses.view", "licenses.manage"]

    async def test_unknown_keys_are_kept_after_catalog_keys(self, editor):
        record = AdminRecord.model_validate(admin_row(ADMIN, permissions=["zeta.custom", "dashboard.view"]))
        await editor.load_for_admin(ADMIN, record)

        assert editor.collect_functional_permissions() == ["dashboard.view", "zeta.custom"]

    async def test_switching_admins_keeps_edits(self, opened, sample_admin):
        opened.set_resource_mode("products", "none")
        opened.set_permission("dashboard.view", True)

        await opened.load_for_admin("admin-3")
        assert opened.active_admin_id == "admin-3"

        profile = opened.resume(ADMIN)
        assert opened.active_admin_id == ADMIN
        assert "dashboard.view" in profile.functional_permissions
        assert profile.resource_policies.policies[ResourceType.PRODUCTS].mode is ResourceAccessMode.NONE

    async def test_resume_unknown_admin(self, editor):
        with pytest.raises(KeyError):
            editor.resume("nobody")

    async def test_unopened_admin_has_no_session(self, opened, store):
        with pytest.raises(KeyError):
            opened.profile("nobody")
        with pytest.raises(KeyError):
            opened.collect_functional_permissions("nobody")
        with pytest.raises(KeyError):
            opened.set_resource_mode("licenses", "own", admin_id="nobody")

        assert "nobody" not in store
        with pytest.raises(KeyError):
            opened.resume("nobody")

    async def test_close_keeps_state(self, opened, store):
        opened.set_resource_mode("licenses", "own")
        opened.close()

        assert opened.active_admin_id is None
        assert store.get_policy(ADMIN, "licenses").mode is ResourceAccessMode.OWN
        with pytest.raises(RuntimeError):
            opened.collect_functional_permissions()

    async def test_selectable_items_only_in_custom(self, opened, backend):
        state, items = await opened.selectable_items("products", "studio")
        assert items == []
        assert backend.count("GET", "/api/admin/products") == 0

        opened.set_resource_mode("products", "custom")
        state, items = await opened.selectable_items("products", "studio")

        assert state.loaded is True
        assert [item.id for item in items] == ["PR1"]

    async def test_selectable_items_forbidden(self, opened, backend):
        backend.add("GET", "/api/admin/policies", envelope(status="error"), status_code=403)
        opened.set_resource_mode("policies", "custom")

        state, items = await opened.selectable_items("policies")

        assert state.forbidden is True
        assert "'policies.view'" in state.error
        assert items == []


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------


class TestSave:

    async def test_sends_payload(self, opened, backend):
        backend.add("PUT", PUT_PATH, _echo(["licenses.view"], {}))
        opened.set_resource_mode("licenses", "custom")
        opened.toggle_resource_item("licenses", "L1")

        await opened.save()

        assert backend.last_json("PUT", PUT_PATH) == {
            "permissions": ["licenses.view", "products.view"],
            "resource_permissions": {
                "licenses": {"mode": "custom", "selected_ids": ["L1", "L2"]},
                "policies": {"mode": "none", "selected_ids": []},
                "products": {"mode": "own", "selected_ids": []},
            },
        }

    async def test_success_adopts_server_echo(self, opened, backend, store):
        backend.add("PUT", PUT_PATH, _echo(
            ["devices.manage", "devices.view"],
            {"licenses": {"mode": "all", "selected_ids": None}, "products": {"mode": "custom", "selected_ids": ["PR2"]}},
        ))
        opened.set_resource_mode("licenses", "custom")
        opened.toggle_resource_item("licenses", "L1")

        result = await opened.save()

        assert result.ok is True
        assert store.get_policy(ADMIN, "licenses").mode is ResourceAccessMode.ALL
        assert store.get_policy(ADMIN, "products").selected_ids == {"PR2"}
        assert store.get_policy(ADMIN, "policies").mode is ResourceAccessMode.ALL
        assert opened.collect_functional_permissions() == ["devices.view", "devices.manage"]
        assert opened.cached_profile(ADMIN).permissions == ["devices.manage", "devices.view"]
        assert result.profile.functional_permissions == {"devices.view", "devices.manage"}

    async def test_failure_preserves_edits(self, opened, backend, store):
        backend.add("PUT", PUT_PATH, envelope(status="error", message="db down"), status_code=500)
        opened.set_resource_mode("licenses", "custom")
        opened.toggle_resource_item("licenses", "L1")
        opened.set_permission("dashboard.view", True)
        before = store.serialize(ADMIN)

        result = await opened.save()

        assert result.ok is False
        assert "Failed to save permissions" in result.message
        assert store.serialize(ADMIN) == before
        assert "dashboard.view" in opened.collect_functional_permissions()

    async def test_retry_after_failure_resends_edits(self, opened, backend):
        calls = []

        def flaky(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(500, json=envelope(status="error"))
            return httpx.Response(200, json=_echo(["licenses.view"], {}))

        backend.add("PUT", PUT_PATH, handler=flaky)
        opened.set_resource_mode("policies", "own")

        assert (await opened.save()).ok is False
        assert (await opened.save()).ok is True
        assert calls[0].content == calls[1].content

    async def test_custom_with_empty_selection_is_saved(self, opened, backend):
        backend.add("PUT", PUT_PATH, _echo([], {"licenses": {"mode": "custom", "selected_ids": []}}))
        opened.set_resource_mode("licenses", "all")
        opened.set_resource_mode("licenses", "custom")

        result = await opened.save()

        assert result.ok is True
        assert backend.last_json("PUT", PUT_PATH)["resource_permissions"]["licenses"] == {
            "mode": "custom", "selected_ids": [],
        }

    async def test_connection_reset_on_save(self, opened, backend, store):
        def reset(request):
            raise httpx.ReadError("connection reset", request=request)

        backend.add("PUT", PUT_PATH, handler=reset)
        opened.set_resource_mode("policies", "own")
        before = store.serialize(ADMIN)

        result = await opened.save()

        assert result.ok is False
        assert "Failed to save permissions" in result.message
        assert store.serialize(ADMIN) == before

    async def test_forbidden_save_message(self, opened, backend):
        backend.add("PUT", PUT_PATH, envelope(status="error"), status_code=403)

        result = await opened.save()

        assert result.ok is False
        assert "not allowed" in result.message

    async def test_super_admin_is_never_sent(self, editor, backend):
        record = AdminRecord.model_validate(admin_row("root", role="super_admin"))
        await editor.load_for_admin("root", record)

        result = await editor.save()

        assert result.ok is False
        assert result.message == SUPER_ADMIN_MESSAGE
        assert backend.count("PUT", "/api/admin/admins/root/permissions") == 0
