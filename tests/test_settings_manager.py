from settings_manager import create_settings_manager
from utils.CONSTANT import DEFAULT_ZOOM


def test_load_creates_file_with_defaults(tmp_path):
    path = tmp_path / "settings.toml"
    sm = create_settings_manager(path)
    sm.load()
    assert path.exists()
    text = path.read_text(encoding="utf-8")
    assert f"zoom = {DEFAULT_ZOOM}" in text
    assert "log_level" in text


def test_values_are_read_back(tmp_path):
    path = tmp_path / "settings.toml"
    sm = create_settings_manager(path)
    sm.set("zoom", 35)
    sm.save()
    again = create_settings_manager(path)
    again.load()
    assert again.get("zoom") == 35


def test_missing_keys_are_restored_and_comments_kept(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("# my own note\nzoom = 30\n", encoding="utf-8")
    sm = create_settings_manager(path)
    sm.load()
    assert sm.get("zoom") == 30
    assert sm.get("relayout_delay_ms") == 100
    text = path.read_text(encoding="utf-8")
    assert "# my own note" in text
    assert "relayout_delay_ms" in text


def test_broken_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "settings.toml"
    path.write_text("zoom = = 3\n", encoding="utf-8")
    sm = create_settings_manager(path)
    sm.load()
    assert sm.get("zoom") == DEFAULT_ZOOM
    assert "Could not read settings" in caplog.text
