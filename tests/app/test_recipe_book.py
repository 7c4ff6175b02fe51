from __future__ import annotations

from pathlib import Path

import pytest

from recipectl.app.recipe_book import RecipeBook, load_book
from recipectl.domain import RecipeConfigError, UnknownRecipeError
from recipectl.settings import workspace_recipe_file


def test_default_book_has_workspace_recipes() -> None:
    book = RecipeBook.default()
    assert book.aliases() == ("cli", "impl", "libs", "service")
    assert book.get("cli").package == "im"
    assert book.get("service").special_commands() == ("dev", "stress")
    assert book.get("cli").special_commands() == ("ir", "ir:now", "build:now")
    assert book.get("libs").rules == ()
    assert book.tool.name == "cargo"
    assert book.tool.offline_args == ("-Z", "no-index-update")


def test_default_book_is_loaded_once() -> None:
    assert RecipeBook.default() is RecipeBook.default()


def test_book_tables_are_read_only() -> None:
    book = RecipeBook.default()
    with pytest.raises(TypeError):
        book.paths["cli"] = "elsewhere"  # type: ignore[index]


def test_unknown_alias_lists_available_recipes() -> None:
    with pytest.raises(UnknownRecipeError) as exc:
        RecipeBook.default().get("web")
    assert exc.value.alias == "web"
    assert "cli, impl, libs, service" in str(exc.value)
    assert exc.value.exit_code == 2


def test_load_from_file(tmp_path: Path) -> None:
    config = tmp_path / "recipes.yaml"
    config.write_text(
        """
        build_tool: make
        recipes:
          docs:
            package: docs
            default: html
            rules:
              - match: serve
                executable: python
                args: ["-m", "http.server", "--directory", "{path}/_build"]
                env:
                  PYTHONUNBUFFERED: "1"
        """,
        encoding="utf-8",
    )
    book = RecipeBook.load_from_file(config)
    recipe = book.get("docs")
    assert book.source == str(config)
    assert book.tool.name == "make"
    assert recipe.path == "docs"
    assert recipe.default == "html"
    assert recipe.rules[0].env == (("PYTHONUNBUFFERED", "1"),)


def test_load_from_file_missing(tmp_path: Path) -> None:
    with pytest.raises(RecipeConfigError):
        RecipeBook.load_from_file(tmp_path / "absent.yaml")


def test_load_from_file_rejects_invalid_yaml(tmp_path: Path) -> None:
    config = tmp_path / "recipes.yaml"
    config.write_text("recipes: [unterminated\n", encoding="utf-8")
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.load_from_file(config)
    assert "not valid YAML" in str(exc.value)


def test_load_from_file_rejects_directory(tmp_path: Path) -> None:
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.load_from_file(tmp_path)
    assert "cannot be read" in str(exc.value)


def test_load_from_file_rejects_non_utf8(tmp_path: Path) -> None:
    config = tmp_path / "recipes.yaml"
    config.write_bytes(b"recipes:\n  cli: \xff\xfe\n")
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.load_from_file(config)
    assert "cannot be read" in str(exc.value)


def test_schema_violations_are_reported() -> None:
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.from_payload({"recipes": {"cli": {"path": "cli"}}})
    assert "'package' is a required property" in str(exc.value)


def test_empty_payload_is_rejected() -> None:
    with pytest.raises(RecipeConfigError):
        RecipeBook.from_payload({})


def test_duplicate_sub_command_is_rejected() -> None:
    payload = {
        "recipes": {
            "cli": {
                "package": "im",
                "rules": [
                    {"match": "ir", "args": ["install"]},
                    {"match": "ir", "args": ["install", "--locked"]},
                ],
            }
        }
    }
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.from_payload(payload)
    assert "more than once" in str(exc.value)


@pytest.mark.parametrize("template", ["{paths[web]}", "{workspace}", "{", "{package.nope}", "{package[x]}"])
def test_bad_placeholders_are_rejected(template: str) -> None:
    payload = {
        "recipes": {
            "service": {
                "package": "service",
                "rules": [{"match": "dev", "args": ["watch", template]}],
            }
        }
    }
    with pytest.raises(RecipeConfigError) as exc:
        RecipeBook.from_payload(payload)
    assert "bad placeholder" in str(exc.value)


def test_load_book_prefers_workspace_file(tmp_path: Path) -> None:
    config = workspace_recipe_file(tmp_path)
    config.parent.mkdir(parents=True)
    config.write_text("recipes:\n  tools:\n    package: tools\n", encoding="utf-8")
    assert load_book(tmp_path).aliases() == ("tools",)


def test_load_book_override_wins(tmp_path: Path) -> None:
    workspace_file = workspace_recipe_file(tmp_path)
    workspace_file.parent.mkdir(parents=True)
    workspace_file.write_text("recipes:\n  tools:\n    package: tools\n", encoding="utf-8")
    override = tmp_path / "other.yaml"
    override.write_text("recipes:\n  bench:\n    package: bench\n", encoding="utf-8")
    assert load_book(tmp_path, override).aliases() == ("bench",)


def test_load_book_falls_back_to_builtin(tmp_path: Path) -> None:
    assert load_book(tmp_path) is RecipeBook.default()
