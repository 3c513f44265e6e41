"""Tests for Jinja2 template engine."""

from pathlib import Path

import jinja2
import pytest

from servers.tour_worker.template_engine import TemplateEngine


class TestTemplateEngine:
    """Tests for TemplateEngine class."""

    @pytest.fixture
    def template_engine(self) -> TemplateEngine:
        """Create template engine with package templates."""
        return TemplateEngine()

    @pytest.fixture
    def temp_template_engine(self, tmp_path: Path) -> TemplateEngine:
        """Create template engine with temporary directory."""
        template_file = tmp_path / "test.j2"
        template_file.write_text("Hello, {{ name }}!")
        return TemplateEngine(template_dir=tmp_path)

    def test_render_simple_template(self, temp_template_engine: TemplateEngine):
        """Test rendering a simple template."""
        result = temp_template_engine.render("test.j2", {"name": "World"})
        assert result == "Hello, World!"

    def test_no_html_escaping(self, temp_template_engine: TemplateEngine):
        """Prompt text is passed through unescaped."""
        result = temp_template_engine.render("test.j2", {"name": "<b>&</b>"})
        assert result == "Hello, <b>&</b>!"

    def test_missing_variable_raises(self, temp_template_engine: TemplateEngine):
        """Undefined variables fail loudly."""
        with pytest.raises(jinja2.UndefinedError):
            temp_template_engine.render("test.j2", {})

    def test_template_exists(self, template_engine: TemplateEngine):
        """Test checking if template exists."""
        assert template_engine.template_exists("extract_events.j2")
        assert not template_engine.template_exists("nonexistent.j2")

    def test_render_extraction_prompt(self, template_engine: TemplateEngine):
        """The prompt states the JSON contract and embeds the page text."""
        result = template_engine.render("extract_events.j2", {"page_text": "PAGE-TEXT"})

        assert "PAGE-TEXT" in result
        assert "YYYY-MM-DD" in result
        assert "HH:MM" in result
        for field in ("tour", "place", "date", "performance", "artist"):
            assert f'"{field}"' in result
        assert "[]" in result
