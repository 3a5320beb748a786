# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import base64

import vc_common.parsing as parsing


def test_interpret_as_bool():
    assert parsing.interpret_as_bool("True")
    assert parsing.interpret_as_bool("true")
    assert parsing.interpret_as_bool("TrUe")
    assert parsing.interpret_as_bool("yes")
    assert parsing.interpret_as_bool("y")
    assert parsing.interpret_as_bool("1")
    assert parsing.interpret_as_bool(1)
    assert parsing.interpret_as_bool(True)
    assert not parsing.interpret_as_bool("False")
    assert not parsing.interpret_as_bool("Falee")
    assert not parsing.interpret_as_bool("Truee")
    assert not parsing.interpret_as_bool("no")
    assert not parsing.interpret_as_bool("n")
    assert not parsing.interpret_as_bool("0")
    assert not parsing.interpret_as_bool(0)
    assert not parsing.interpret_as_bool(False)


def test_padding():
    for raw in [b"a", b"ab", b"abc", b"abcd"]:
        padded = base64.urlsafe_b64encode(raw).decode()
        unpadded = parsing.remove_padding(padded)
        assert "=" not in unpadded
        assert parsing.add_padding(unpadded) == padded
        assert base64.urlsafe_b64decode(parsing.add_padding(unpadded)) == raw


def test_canonicalize():
    assert parsing.canonicalize({"b": 1, "a": {"d": [1, 2], "c": "ä"}}) == '{"a":{"c":"ä","d":[1,2]},"b":1}'.encode()
    assert parsing.canonicalize({"a": 1, "b": 2}) == parsing.canonicalize({"b": 2, "a": 1})
