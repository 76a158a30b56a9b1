"""Tests for the AudienceStudio facade."""

from audience_studio import AudienceStudio, open_studio
from audience_studio.catalog import FieldGroup, FieldType
from audience_studio.core.config import Settings


def _settings() -> Settings:
    return Settings(_env_file=None, enable_httpfs=False)


class TestAudienceStudio:
    def test_load_preview_count(self, people_csv):
        with open_studio(_settings()) as studio:
            result = studio.load_and_project({"url": str(people_csv), "format": "csv"})
            assert result.ok
            assert len(studio.preview().rows) == 3
            assert studio.count({"field": "age", "op": ">", "value": 30}) == 1

    def test_ensure_loaded(self, people_csv):
        with open_studio(_settings()) as studio:
            options = {"url": str(people_csv), "format": "csv"}
            studio.ensure_loaded(options)
            assert studio.ensure_loaded(options).reused

    def test_fields(self, session):
        studio = AudienceStudio(session)
        assert len(studio.fields()) == len(studio.catalog)
        contacts = studio.fields(group="contact", field_type="json")
        assert contacts
        assert all(f.group == FieldGroup.CONTACT and f.type == FieldType.JSON for f in contacts)

    def test_context_manager_closes_session(self, people_csv):
        studio = AudienceStudio.from_settings(_settings())
        with studio:
            assert studio.session.manager.initialized
        assert not studio.session.manager.initialized
