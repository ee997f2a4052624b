from config.simulator import DEFAULT_RULES, SimulatorRules


def test_missing_file_falls_back_to_defaults(tmp_path):
    rules = SimulatorRules(str(tmp_path / "absent.yaml"))
    assert rules.product_name == DEFAULT_RULES["product_name"]
    assert "bubbleup" in rules.banned_keywords
    assert rules.turn_limit("hard") == 14
    assert rules.turn_limit(None) == 12
    assert rules.turn_limit("unknown") == 12


def test_yaml_overrides_and_reload(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "product_name: Acme\nbanned_product_keywords:\n  - Widgetizer\nturn_limits:\n  easy: 4\n  medium: 6\n",
        encoding="utf-8",
    )
    rules = SimulatorRules(str(path))
    assert rules.product_name == "Acme"
    assert rules.banned_keywords == ["widgetizer"]
    assert rules.turn_limit("easy") == 4
    # keys absent from the file keep their defaults
    assert rules.state("PAIN_DISCOVERY").attendee_behavior

    path.write_text("product_name: Acme 2\n", encoding="utf-8")
    rules.reload_if_changed(force=True)
    assert rules.product_name == "Acme 2"
    assert "bubbleup" in rules.banned_keywords
