"""Validation engine: registration, check() phases and their ordering."""
import pytest

from fieldcheck.errors import ErrorCode, InvalidCallbackError, UnknownFilterError, UnknownRuleError
from fieldcheck.validation import (
    RULES,
    WILDCARD,
    CatalogTranslator,
    CheckResult,
    FixedLocale,
    StaticConfigSource,
    Validation,
    default_label,
    factory,
    register_message,
    register_rule,
)


@pytest.fixture
def scratch_rules():
    """Names registered during a test are removed afterwards."""
    names: list[str] = []
    yield names
    for name in names:
        RULES.unregister(name)


def always_false(value):
    return False


class TestEndToEnd:

    def test_empty_username_and_bad_email(self, make_validation):
        v = (make_validation({"username": "", "email": "bad"})
            .rule("username", "not_empty")
            .rule("email", "email"))

        passed, errors = v.check()

        assert passed is False
        assert errors == {
            "username": "username must not be empty",
            "email": "email does not match the required format",
        }
        assert v.errors == errors

    def test_all_valid(self, make_validation):
        v = (make_validation({"username": "jdoe", "email": "jdoe@example.com"})
            .rule("username", "not_empty")
            .rule("username", "min_length", [4])
            .rule("email", "email"))

        result = v.check()

        assert result
        assert result.errors == {}
        assert result.submitted is True

    def test_module_factory(self, collaborators):
        v = factory({"a": "1"}, collaborators=collaborators, profiling=False)
        assert isinstance(v, Validation)
        assert v["a"] == "1"


class TestSubmission:

    def test_not_submitted_runs_nothing(self, make_validation):
        seen = []
        v = (make_validation({"other": "x"})
            .filter("username", lambda value: seen.append(value) or value)
            .rule("username", "not_empty"))

        result = v.check()

        assert result.submitted is False
        assert result.passed is False
        assert result.errors == {}
        assert seen == []

    def test_context_is_replaced_even_when_not_submitted(self, make_validation):
        v = make_validation({"other": "x"}).rule("username", "not_empty")
        v.check()
        assert v.as_array() == {"username": None}

    def test_unexpected_fields_are_dropped(self, make_validation):
        v = make_validation({"a": "1", "extra": "x"}).rule("a", "not_empty")
        assert v.check()
        assert "extra" not in v
        assert v.as_array() == {"a": "1"}

    def test_missing_expected_field_becomes_none(self, make_validation):
        v = (make_validation({"a": "1"})
            .rule("a", "not_empty")
            .rule("b", "not_empty"))

        result = v.check()

        assert v["b"] is None
        assert result.errors == {"b": "b must not be empty"}

    def test_empty_string_counts_as_submitted(self, make_validation):
        result = make_validation({"a": ""}).rule("a", "min_length", [3]).check()
        assert result.submitted is True
        assert result.passed is True


class TestRules:

    def test_first_failure_stops_the_field(self, make_validation):
        calls = []

        def recording(value):
            calls.append(value)
            return True

        v = (make_validation({"x": "abc", "y": "abc"})
            .rule("x", always_false)
            .rule("x", recording)
            .rule("y", recording))

        result = v.check()

        assert result.errors == {"x": "x value is invalid"}
        assert calls == ["abc"]

    def test_empty_values_skip_all_but_not_empty(self, make_validation):
        v = (make_validation({"x": "", "y": None, "z": "set"})
            .rule("x", "email")
            .rule("y", "min_length", [3])
            .rule("z", "not_empty"))
        assert v.check().passed is True

    def test_not_empty_runs_on_none(self, make_validation):
        v = (make_validation({"x": None, "z": "set"})
            .rule("x", "not_empty")
            .rule("z", "not_empty"))
        assert v.check().errors == {"x": "x must not be empty"}

    def test_rules_run_in_registration_order(self, make_validation):
        v = (make_validation({"name": "a1"})
            .rule("name", "min_length", [3])
            .rule("name", "alpha"))
        assert v.check().errors == {"name": "name must be at least 3 characters long"}

    def test_reregistering_replaces_params(self, make_validation):
        v = (make_validation({"name": "abc"})
            .rule("name", "min_length", [10])
            .rule("name", "min_length", [2]))
        assert v.check().passed is True

    def test_params_appear_in_message(self, make_validation):
        v = make_validation({"age": "42"}).rule("age", "range", [1, 10])
        assert v.check().errors == {"age": "age must be within the range of 1, 10"}

    def test_scalar_param(self, make_validation):
        v = make_validation({"name": "ab"}).rule("name", "min_length", 3)
        assert v.check().errors == {"name": "name must be at least 3 characters long"}

    def test_rule_set(self, make_validation):
        v = make_validation({"code": "abc"}).rule_set("code", {"not_empty": None, "exact_length": [4]})
        assert v.check().errors == {"code": "code must be exactly 4 characters long"}

    def test_matches_sees_sibling_fields(self, make_validation):
        v = (make_validation({"password": "a", "password_confirm": "b"})
            .rule("password", "not_empty")
            .rule("password_confirm", "matches", ["password"]))
        assert v.check().errors == {"password_confirm": "password confirm must be the same as password"}

    def test_matches_after_filters(self, make_validation):
        v = (make_validation({"password": " a ", "password_confirm": "a"})
            .filter("password", "trim")
            .rule("password_confirm", "matches", ["password"]))
        assert v.check().passed is True


class TestExternalRules:

    def test_callable_rule_with_registered_message(self, make_validation):
        def is_even(value):
            return int(value) % 2 == 0

        register_message("is_even", ":field must be even")
        v = make_validation({"n": "3"}).rule("n", is_even)
        assert v.check().errors == {"n": "n must be even"}

    def test_dotted_path(self, make_validation):
        v = (make_validation({"abs": "/tmp", "rel": "tmp"})
            .rule("abs", "os.path.isabs")
            .rule("rel", "os.path:isabs"))
        assert v.check().errors == {"rel": "rel value is invalid"}

    def test_registered_rule_with_fields(self, make_validation, scratch_rules):
        register_rule("after", lambda value, other, *, fields: int(value) > int(fields[other]), uses=("fields",))
        scratch_rules.append("after")

        v = (make_validation({"start": "5", "end": "3"})
            .rule("start", "not_empty")
            .rule("end", "after", ["start"]))
        assert v.check().errors == {"end": "end value is invalid"}

    def test_unknown_rule_fails_loudly(self, make_validation):
        v = make_validation({"x": "value"}).rule("x", "no_such_rule")
        with pytest.raises(UnknownRuleError) as info:
            v.check()
        assert info.value.code == ErrorCode.E7001_UNKNOWN_RULE
        assert info.value.metadata["field"] == "x"

    def test_unknown_dotted_rule(self, make_validation):
        v = make_validation({"x": "value"}).rule("x", "no_such_module.sub:fn")
        with pytest.raises(UnknownRuleError):
            v.check()


class TestFilters:

    def test_filter_before_rule(self, make_validation):
        v = (make_validation({"code": "ab"})
            .filter("code", "upper")
            .rule("code", "regex", [r"^[A-Z]+$"]))
        assert v.check().passed is True
        assert v["code"] == "AB"

    def test_uppercase_then_exact_length(self, make_validation):
        v = (make_validation({"code": "abc"})
            .filter("code", "uppercase")
            .rule("code", "exact_length", [3]))
        assert v.check().passed is True
        assert v.as_array() == {"code": "ABC"}

    def test_filters_chain_in_order(self, make_validation):
        v = (make_validation({"x": "  ab "})
            .filter("x", "trim")
            .filter("x", "upper")
            .rule("x", "exact_length", [2]))
        assert v.check().passed is True
        assert v["x"] == "AB"

    def test_filter_params(self, make_validation):
        v = make_validation({"x": "--a--"}).filter("x", "trim", ["-"])
        v.check()
        assert v["x"] == "a"

    def test_empty_values_are_not_filtered(self, make_validation):
        seen = []
        v = (make_validation({"x": "", "y": "keep"})
            .filter("x", lambda value: seen.append(value) or value)
            .rule("y", "not_empty"))
        v.check()
        assert seen == []

    def test_conversion_filter(self, make_validation):
        v = make_validation({"age": "7"}).filter("age", "int").rule("age", "range", [1, 10])
        assert v.check().passed is True
        assert v["age"] == 7

    def test_unknown_filter(self, make_validation):
        v = make_validation({"x": "value"}).filter("x", "no_such_filter")
        with pytest.raises(UnknownFilterError) as info:
            v.check()
        assert info.value.code == ErrorCode.E7002_UNKNOWN_FILTER


class TestWildcard:

    def test_wildcard_rule_applies_to_every_field(self, make_validation):
        v = (make_validation({"a": "x", "b": ""})
            .labels({"a": "A", "b": "B"})
            .rule(True, "not_empty"))
        assert v.check().errors == {"b": "B must not be empty"}

    def test_field_entry_wins_over_wildcard(self, make_validation):
        v = (make_validation({"a": "xy", "b": "xy"})
            .rule(WILDCARD, "min_length", [3])
            .rule("a", "not_empty")
            .rule("b", "min_length", [1]))
        assert v.check().errors == {"a": "a must be at least 3 characters long"}

    def test_wildcard_filter(self, make_validation):
        v = (make_validation({"a": " x ", "b": " y "})
            .filter(WILDCARD, "trim")
            .rule("a", "not_empty")
            .rule("b", "not_empty"))
        v.check()
        assert v.as_array() == {"a": "x", "b": "y"}

    def test_wildcard_is_not_a_field(self, make_validation):
        v = make_validation({"a": "x"}).rule(WILDCARD, "not_empty").rule("a", "alpha")
        v.check()
        assert list(v.get_labels()) == ["a"]
        assert list(v.as_array()) == ["a"]

    def test_wildcard_callback_runs_once_per_field(self, make_validation):
        calls = []

        def record(validation, field, errors):
            calls.append(field)

        v = (make_validation({"a": "1", "b": "2"})
            .rule("a", "not_empty")
            .rule("b", "not_empty")
            .callback(WILDCARD, record)
            .callback("a", record))
        v.check()
        assert calls == ["a", "b"]


class TestCallbacks:

    def test_callback_sees_values_and_mutates_errors(self, make_validation):
        def differs_from_username(validation, field, errors):
            if validation[field] == validation["username"]:
                errors[field] = "password must differ from the username"

        v = (make_validation({"username": "jdoe", "password": "jdoe"})
            .rule("username", "not_empty")
            .callback("password", differs_from_username))

        assert v.check().errors == {"password": "password must differ from the username"}

    def test_callback_returns_new_error_map(self, make_validation):
        def forgive(validation, field, errors):
            return {k: msg for k, msg in errors.items() if k != "nickname"}

        v = (make_validation({"nickname": "", "name": "x"})
            .rule("nickname", "not_empty")
            .callback("name", forgive))

        result = v.check()
        assert result.passed is True
        assert v.errors == {}

    def test_callback_skipped_when_field_failed(self, make_validation):
        calls = []
        v = (make_validation({"x": "abc"})
            .rule("x", always_false)
            .callback("x", lambda validation, field, errors: calls.append(field)))
        v.check()
        assert calls == []

    def test_seeded_errors(self, make_validation):
        calls = []
        v = (make_validation({"x": "abc"})
            .rule("x", "not_empty")
            .callback("x", lambda validation, field, errors: calls.append(field)))

        result = v.check(errors={"x": "already rejected"})

        assert result.passed is False
        assert result.errors == {"x": "already rejected"}
        assert calls == []

    def test_duplicate_callback_is_ignored(self, make_validation):
        calls = []

        def record(validation, field, errors):
            calls.append(field)

        v = make_validation({"x": "1"}).callback("x", record).callback("x", record)
        v.check()
        assert calls == ["x"]

    def test_callback_may_reject_other_fields(self, make_validation):
        def both_or_neither(validation, field, errors):
            if bool(validation["start"]) != bool(validation["end"]):
                errors["end"] = "end is required with start"
            return errors

        v = (make_validation({"start": "2024-01-01", "end": ""})
            .rule("end", "date")
            .callback("start", both_or_neither))
        assert v.check().errors == {"end": "end is required with start"}

    def test_bad_return_type(self, make_validation):
        v = make_validation({"x": "1"}).callback("x", lambda validation, field, errors: "oops")
        with pytest.raises(InvalidCallbackError) as info:
            v.check()
        assert info.value.code == ErrorCode.E7005_INVALID_CALLBACK

    def test_non_callable(self, make_validation):
        with pytest.raises(InvalidCallbackError):
            make_validation({}).callback("x", "not callable")


class TestLabelsAndMessages:

    def test_default_label(self):
        assert default_label("first_name") == "first name"
        assert default_label("email") == "email"
        assert default_label("user-id") == "user id"

    def test_custom_label_in_message(self, make_validation):
        v = (make_validation({"pw2": "a", "pw": "b"})
            .rule("pw", "not_empty")
            .rule("pw2", "matches", ["pw"])
            .label("pw2", "password confirmation"))
        assert v.check().errors == {"pw2": "password confirmation must be the same as pw"}

    def test_get_labels_is_a_copy(self, make_validation):
        v = make_validation().rule("first_name", "not_empty")
        labels = v.get_labels()
        labels["first_name"] = "changed"
        assert v.get_labels() == {"first_name": "first name"}

    def test_label_kept_when_rule_added_later(self, make_validation):
        v = make_validation().label("user_id", "Account").rule("user_id", "digit")
        assert v.get_labels() == {"user_id": "Account"}

    def test_translator_translates_label_and_template(self, make_validation, collaborators):
        translator = CatalogTranslator({
            "username": "Benutzername",
            ":field must not be empty": ":field darf nicht leer sein",
        }, locale="de")
        v = make_validation({"username": ""}, collaborators=collaborators.replace(translator=translator))
        v.rule("username", "not_empty")
        assert v.check().errors == {"username": "Benutzername darf nicht leer sein"}


class TestCollaboratorRules:

    def test_email_domain(self, make_validation):
        v = (make_validation({"good": "jdoe@example.com", "bad": "jdoe@broken.test"})
            .rule("good", "email_domain")
            .rule("bad", "email_domain"))
        assert v.check().errors == {"bad": "bad must use a domain that accepts mail"}

    def test_credit_card_uses_config_source(self, make_validation, collaborators):
        config = StaticConfigSource({"credit_cards": {"corporate": {"length": "4", "prefix": "9", "luhn": False}}})
        v = (make_validation({"card": "9123", "other": "8123"}, collaborators=collaborators.replace(config=config))
            .rule("card", "credit_card", ["corporate"])
            .rule("other", "credit_card", ["corporate"]))
        assert v.check().errors == {"other": "other must be a valid credit card number"}

    def test_numeric_uses_locale(self, make_validation, collaborators):
        v = (make_validation({"amount": "12,5"}, collaborators=collaborators.replace(locale=FixedLocale(",")))
            .rule("amount", "numeric"))
        assert v.check().passed is True


class TestProfiling:

    def test_check_is_bracketed(self, make_validation, profiler):
        make_validation({"a": "1"}, profiling=True).rule("a", "not_empty").check()
        assert profiler.events == [("start", "Validation"), ("stop", "Validation")]

    def test_stopped_when_not_submitted(self, make_validation, profiler):
        make_validation({}, profiling=True).rule("a", "not_empty").check()
        assert profiler.events == [("start", "Validation"), ("stop", "Validation")]

    def test_stopped_on_error(self, make_validation, profiler):
        v = make_validation({"a": "1"}, profiling=True).rule("a", "no_such_rule")
        with pytest.raises(UnknownRuleError):
            v.check()
        assert profiler.events[-1] == ("stop", "Validation")

    def test_off_by_default_here(self, make_validation, profiler):
        make_validation({"a": "1"}).rule("a", "not_empty").check()
        assert profiler.events == []


class TestMappingInterface:

    def test_mapping_operations(self, make_validation):
        v = make_validation({"a": "1"})
        v["b"] = "2"
        assert "b" in v
        assert len(v) == 2
        assert sorted(v) == ["a", "b"]
        del v["a"]
        assert v.as_array() == {"b": "2"}

    def test_as_array_is_idempotent(self, make_validation):
        v = make_validation({"a": " x "}).filter("a", "trim").rule("a", "not_empty")
        v.check()
        assert v.as_array() == v.as_array() == v.as_dict() == {"a": "x"}

    def test_as_array_is_a_snapshot(self, make_validation):
        v = make_validation({"a": "1"})
        snapshot = v.as_array()
        snapshot["a"] = "changed"
        assert v["a"] == "1"


class TestCheckResult:

    def test_truthiness_and_unpacking(self):
        ok = CheckResult(passed=True)
        failed = CheckResult(passed=False, errors={"a": "bad"})

        assert ok and not failed
        passed, errors = failed
        assert passed is False
        assert errors == {"a": "bad"}
        assert ok.submitted is True
