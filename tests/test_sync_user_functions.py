from guardiao.scripts.sync_user_functions import normalized_changes, sync_user_functions


class TestNormalizedChanges:
    def test_consistent_row(self):
        assert normalized_changes({"function_id": "SAP_01", "custom_permissions": ["view_personnel"]}) is None
        assert normalized_changes({"function_id": None, "custom_permissions": None}) is None

    def test_unknown_function_falls_back_to_default(self):
        assert normalized_changes({"function_id": "GOD_MODE", "custom_permissions": []}) == {"function_id": "PADRAO"}

    def test_unknown_permissions_are_dropped(self):
        changes = normalized_changes({"function_id": "PADRAO", "custom_permissions": ["view_personnel", "fly"]})
        assert changes == {"custom_permissions": ["view_personnel"]}


class TestSync:
    def test_updates_only_inconsistent_rows(self, fake_supabase, make_user):
        make_user(function_id="SOP_01")
        legacy = make_user(function_id="ANTIGO", custom_permissions=["manage_missions", "legacy_flag"])

        assert sync_user_functions(fake_supabase) == 1
        row = next(u for u in fake_supabase.rows("users") if u["id"] == legacy["id"])
        assert row["function_id"] == "PADRAO"
        assert row["custom_permissions"] == ["manage_missions"]
        assert sync_user_functions(fake_supabase) == 0
