from urllib.parse import quote

from inkas.collectors import CollectorIdentity, resolve_collector


def test_known_mojibake_name():
    assert resolve_collector("Р†РіРѕСЂ") == CollectorIdentity("Kirk", "Kirk")


def test_known_name_survives_url_encoding():
    assert resolve_collector(quote("Р†РіРѕСЂ")) == CollectorIdentity("Kirk", "Kirk")
    assert resolve_collector("Р†РіРѕСЂ - інкасація") == CollectorIdentity("Kirk", "Kirk")


def test_second_known_name():
    assert resolve_collector('Р"РјРёС‚СЂРѕ').id == "Anna"


def test_name_dash_pattern():
    assert resolve_collector("Петро - ") == CollectorIdentity(None, "Петро")


def test_plain_label_is_trimmed():
    assert resolve_collector("  Олег  ") == CollectorIdentity(None, "Олег")


def test_url_encoded_label():
    assert resolve_collector(quote("Олег")).label == "Олег"


def test_broken_percent_encoding_keeps_raw():
    assert resolve_collector("%D0").label == "%D0"


def test_empty():
    assert resolve_collector(None) == CollectorIdentity(None, None)
    assert resolve_collector("") == CollectorIdentity(None, None)
    assert resolve_collector("   ") == CollectorIdentity(None, None)
