def test_missing_key_returns_default(settings):
    assert settings.get("site_name") is None
    assert settings.get("site_name", "My site") == "My site"


def test_set_then_get(settings):
    settings.set("site_name", "Acme")

    assert settings.get("site_name") == "Acme"


def test_set_is_an_upsert(settings):
    settings.set("site_name", "Acme")
    settings.set("site_name", "Acme Corp")

    assert settings.get("site_name") == "Acme Corp"
    assert settings.all() == {"site_name": "Acme Corp"}


def test_structured_values_are_kept(settings):
    settings.set("footer", {"links": ["about", "contact"], "year": 2024})

    assert settings.get("footer") == {"links": ["about", "contact"], "year": 2024}


def test_none_value_falls_back_to_default(settings):
    settings.set("logo", None)

    assert settings.get("logo", "default.png") == "default.png"


def test_all_lists_every_setting(settings):
    settings.set("site_name", "Acme")
    settings.set("theme", "dark")

    assert settings.all() == {"site_name": "Acme", "theme": "dark"}


def test_settings_are_independent_of_pages(settings, repo):
    settings.set("site_name", "Acme")
    page = repo.create({"title": "Home", "slug": "home"})
    repo.delete(page["id"])

    assert settings.get("site_name") == "Acme"
