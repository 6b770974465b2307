"""Test feature name formatting and the feature registry."""

from cluster_explorer.features import FeatureRegistry, format_feature_name, format_value


def test_format_feature_name_splits_camel_case():
    assert format_feature_name("camelCaseName") == "Camel Case Name"


def test_format_feature_name_capitalises_plain_keys():
    assert format_feature_name("energy") == "Energy"
    assert format_feature_name("") == ""


def test_format_value_kinds():
    assert format_value(0.734, "percent") == "73%"
    assert format_value(0.734, "decimal") == "0.73"
    assert format_value(3) == "3"


def test_registry_deduplicates_in_order():
    registry = FeatureRegistry(["energy", "valence", "energy"])

    assert tuple(registry.names) == ("energy", "valence")
    assert len(registry) == 2
    assert "valence" in registry
    assert "tempo" not in registry


def test_registry_options_use_display_labels():
    registry = FeatureRegistry(["danceability", "instrumentalness"])

    assert registry.options() == [
        {"label": "Danceability", "value": "danceability"},
        {"label": "Instrumentalness", "value": "instrumentalness"},
    ]


def test_default_axes_repeat_first_when_too_few():
    assert FeatureRegistry(["a", "b"]).default_axes(3) == ("a", "b", "a")
    assert FeatureRegistry(["a", "b", "c", "d"]).default_axes(2) == ("a", "b")
    assert FeatureRegistry([]).default_axes(2) == ()
