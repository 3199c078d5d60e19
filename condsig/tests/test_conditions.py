# -*- coding: utf-8 -*-

import pickle

import pytest

from condsig.collections import frozendict
from condsig.conditions import (Condition, ControlError,
                                make_condition,
                                error_condition, warning_condition, message_condition, generic_condition,
                                condition_family, is_condition, inherits,
                                message_of, classes_of, metadata_of, origin_of)


class TestConstruction:
    def test_family_roots_are_appended(self):
        assert make_condition("error", "boom").classes == ("error", "condition")
        assert make_condition(["custom_bad_argument", "error"], "boom").classes == \
            ("custom_bad_argument", "error", "condition")
        assert make_condition("warning", "hmm").classes == ("warning", "condition")
        assert make_condition("message", "hi").classes == ("message", "condition")

    def test_generic_condition_ends_in_root(self):
        assert make_condition([], "plain").classes == ("condition",)
        assert make_condition(["my_signal"], "plain").classes == ("my_signal", "condition")

    def test_family_tag_is_moved_ahead_of_root(self):
        # The family tag always sits just before the root, whatever the input order.
        c = make_condition(["error", "condition", "custom_bad_argument"], "boom")
        assert c.classes == ("custom_bad_argument", "error", "condition")

    def test_duplicate_tags_are_dropped(self):
        c = make_condition(["a", "b", "a", "error", "error"], "boom")
        assert c.classes == ("a", "b", "error", "condition")

    def test_two_families_are_refused(self):
        with pytest.raises(ValueError):
            make_condition(["error", "warning"], "which one?")

    def test_interrupts_are_not_user_constructible(self):
        with pytest.raises(ValueError):
            make_condition(["interrupt"], "stop")
        with pytest.raises(ValueError):
            error_condition("stop", classes="interrupt")

    def test_message_is_required(self):
        with pytest.raises(TypeError):
            make_condition("error", None)
        with pytest.raises(TypeError):
            make_condition("error", 42)

    def test_bad_tags_are_refused(self):
        with pytest.raises(TypeError):
            make_condition(["ok", ""], "boom")
        with pytest.raises(TypeError):
            make_condition(["ok", 3], "boom")

    def test_metadata_must_be_a_mapping(self):
        with pytest.raises(TypeError):
            make_condition("error", "boom", [("arg", "x")])

    def test_family_constructors(self):
        c = error_condition("`x` must be numeric", classes="error_bad_argument",
                            metadata={"arg": "x", "must": "numeric", "not": "character"})
        assert c.classes == ("error_bad_argument", "error", "condition")
        assert warning_condition("w").classes == ("warning", "condition")
        assert message_condition("m", classes=("note",)).classes == ("note", "message", "condition")
        assert generic_condition("g", classes="tick").classes == ("tick", "condition")
        with pytest.raises(ValueError):
            warning_condition("w", classes="error")
        with pytest.raises(ValueError):
            generic_condition("g", classes="message")

    def test_control_error(self):
        c = ControlError("no such restart", {"restart": "foo"})
        assert c.classes == ("control_error", "error", "condition")
        assert condition_family(c) == "error"
        assert metadata_of(c, "restart") == "foo"


class TestClassification:
    def test_condition_family(self):
        assert condition_family(make_condition(["x", "error"], "e")) == "error"
        assert condition_family(make_condition(["x", "warning"], "w")) == "warning"
        assert condition_family(make_condition(["x", "message"], "m")) == "message"
        assert condition_family(make_condition(["x"], "g")) == "condition"
        assert condition_family(Condition("i", ("interrupt",))) == "interrupt"
        # also works on a bare tag sequence
        assert condition_family(("custom", "warning", "condition")) == "warning"

    def test_family_property(self):
        assert make_condition("warning", "w").family == "warning"

    def test_inherits(self):
        c = make_condition(["custom_bad_argument", "error"], "boom")
        assert inherits(c, "custom_bad_argument")
        assert inherits(c, "warning", "error")
        assert not inherits(c, "warning")

    def test_is_condition(self):
        assert is_condition(make_condition("error", "boom"))
        assert not is_condition(ValueError("boom"))


class TestAccessorsAndImmutability:
    def test_accessors(self):
        c = make_condition(["custom_bad_argument", "error"], "`x` must be numeric",
                           {"arg": "x", "must": "numeric"}, origin="check_x")
        assert message_of(c) == "`x` must be numeric"
        assert classes_of(c) == ("custom_bad_argument", "error", "condition")
        assert metadata_of(c, "arg") == "x"
        assert metadata_of(c, "not", "n/a") == "n/a"
        assert origin_of(c) == "check_x"
        with pytest.raises(KeyError):
            metadata_of(c, "not")

    def test_origin_is_optional(self):
        assert origin_of(make_condition("error", "boom")) is None

    def test_accessors_check_their_argument(self):
        with pytest.raises(TypeError):
            message_of("not a condition")

    def test_str_is_the_message(self):
        c = make_condition("error", "boom")
        assert str(c) == "boom"
        assert "boom" in repr(c)

    def test_fields_are_read_only(self):
        c = make_condition("error", "boom", {"arg": "x"})
        with pytest.raises(AttributeError):
            c.message = "bang"
        with pytest.raises(AttributeError):
            c.classes = ("warning", "condition")
        with pytest.raises(TypeError):
            c.metadata["arg"] = "y"

    def test_metadata_is_copied_at_construction(self):
        data = {"arg": "x"}
        c = make_condition("error", "boom", data)
        data["arg"] = "y"
        assert metadata_of(c, "arg") == "x"
        assert isinstance(c.metadata, frozendict)

    def test_rerooting_leaves_the_original_alone(self):
        c = make_condition(["tick"], "generic")
        w = c._rerooted("warning")
        assert w.classes == ("tick", "warning", "condition")
        assert c.classes == ("tick", "condition")
        assert w.message == c.message

    def test_pickle(self):
        c = make_condition(["custom_bad_argument", "error"], "boom", {"arg": "x"})
        c2 = pickle.loads(pickle.dumps(c))
        assert c2.classes == c.classes
        assert c2.message == c.message
        assert metadata_of(c2, "arg") == "x"
