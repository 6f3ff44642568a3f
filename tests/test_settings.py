"""
Tests for configuration and database URL resolution.
"""

import pytest

from petworld.db_helpers import LOCAL_SQLITE_URL, get_database_url
from petworld.settings import Settings


class TestAiEnabled:

    def test_real_openai_key_enables_ai(self):
        assert Settings(openai_api_key="sk-abc", llm_model="gpt-4o").ai_enabled

    @pytest.mark.parametrize("key", ["", "  ", "CHANGE_ME", "CHANGE_ME_IN_DOCKER_COMPOSE", "sk-proj-DEMO-xyz"])
    def test_placeholder_keys_disable_ai(self, key):
        assert not Settings(openai_api_key=key, llm_model="gpt-4o").ai_enabled

    def test_vertex_model_needs_real_project(self):
        assert not Settings(llm_model="gemini-2.5-flash").ai_enabled
        assert Settings(llm_model="gemini-2.5-flash", project_id="petworld-prod").ai_enabled


class TestIterationBudget:

    @pytest.mark.parametrize("configured,expected", [(3, 3), (2, 2), (9, 3), (0, 1), (-4, 1)])
    def test_clamped_to_one_through_three(self, configured, expected):
        assert Settings(max_iterations=configured).iteration_budget == expected


class TestDatabaseUrl:

    def test_explicit_database_url_wins(self):
        url = "postgresql+pg8000://u:p@db:5432/shop"

        assert get_database_url(Settings(database_url=url, db_host="elsewhere")) == url

    def test_localhost_uses_sqlite(self):
        assert get_database_url(Settings(db_host="localhost")) == LOCAL_SQLITE_URL

    def test_remote_host_builds_pg8000_url(self):
        url = get_database_url(Settings(db_host="10.0.0.5", db_port=5433, db_name="shop", db_user="app", db_password="pw"))

        assert url == "postgresql+pg8000://app:pw@10.0.0.5:5433/shop"

    def test_remote_host_without_credentials_fails(self):
        with pytest.raises(RuntimeError):
            get_database_url(Settings(db_host="10.0.0.5"))
