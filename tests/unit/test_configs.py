import pytest

from sqllink.configs.manager import ConfigManager

LINKS_YAML = """
version: 1
links:
  - name: ORDERS
    schema: SALES
    url: postgresql://reporting@db.example.com/sales
    user: reporting
    password: ${env:SALES_DB_PASSWORD}
    remote_schema: public
    remote_table: orders
    emit_updates: true
    fetch_size: 500
  - name: RECENT
    url: sqlite:///archive.db
    remote_table: (SELECT * FROM orders WHERE year >= 2024)
    read_only: true
"""


@pytest.fixture()
def links_file(tmp_path):
    path = tmp_path / "links.yaml"
    path.write_text(LINKS_YAML, encoding="utf-8")
    return path


def test_load_links_resolves_env_secrets(links_file, tmp_path, monkeypatch):
    # Validates config loading because passwords are kept out of the YAML file.
    # Arrange
    monkeypatch.setenv("SALES_DB_PASSWORD", "s3cret")
    manager = ConfigManager(project_root=tmp_path)

    # Act
    links = manager.load_links(links_file)

    # Assert
    assert [link.name for link in links] == ["ORDERS", "RECENT"]
    orders = links[0].to_definition()
    assert orders.password.get_secret_value() == "s3cret"
    assert orders.remote_schema == "public"
    assert orders.emit_updates and orders.fetch_size == 500
    assert links[0].schema_name == "SALES"
    assert links[1].schema_name == "PUBLIC"
    assert links[1].to_definition().is_query


def test_missing_secret_is_reported(links_file, tmp_path, monkeypatch):
    # Arrange
    monkeypatch.delenv("SALES_DB_PASSWORD", raising=False)

    # Act / Assert
    with pytest.raises(ValueError, match="Secret not found"):
        ConfigManager(project_root=tmp_path).load_links(links_file)


def test_invalid_structure_is_rejected(tmp_path):
    # Arrange
    path = tmp_path / "links.yaml"
    path.write_text("links:\n  - name: BROKEN\n", encoding="utf-8")

    # Act / Assert
    with pytest.raises(ValueError, match="Link Configuration Invalid"):
        ConfigManager(project_root=tmp_path).load_links(path)


def test_missing_file_raises(tmp_path):
    # Act / Assert
    with pytest.raises(FileNotFoundError):
        ConfigManager(project_root=tmp_path).load_links()


def test_get_link_by_name(links_file, tmp_path, monkeypatch):
    # Arrange
    monkeypatch.setenv("SALES_DB_PASSWORD", "s3cret")
    manager = ConfigManager(project_root=tmp_path)

    # Act / Assert
    assert manager.get_link("RECENT", links_file).read_only
    with pytest.raises(KeyError):
        manager.get_link("NOPE", links_file)
