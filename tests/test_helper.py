"""Unit tests for naming and path helpers."""

import os

import pytest

from thrift_generator import helper


class TestNaming:
    """Test the conversions between schema names and Python names."""

    def test_sanitize_keyword(self):
        assert helper.sanitize_name("from") == "from_"

    def test_sanitize_regular_name(self):
        assert helper.sanitize_name("value") == "value"

    def test_camelize_snake_case(self):
        assert helper.camelize("my_struct") == "MyStruct"

    def test_camelize_keeps_inner_capitals(self):
        assert helper.camelize("myStruct") == "MyStruct"
        assert helper.camelize("HTTPServer") == "HTTPServer"

    def test_underscore_camel_case(self):
        assert helper.underscore("TreeNode") == "tree_node"

    def test_underscore_acronym(self):
        assert helper.underscore("HTTPServer") == "http_server"

    def test_underscore_hyphen(self):
        assert helper.underscore("some-module") == "some_module"

    def test_split_name(self):
        assert helper.split_name("tutorial.Color.RED") == ("tutorial", "Color.RED")

    def test_split_unqualified_name(self):
        with pytest.raises(ValueError, match="not qualified"):
            helper.split_name("Point")

    def test_local_and_class_name(self):
        assert helper.local_name("tutorial.Point") == "Point"
        assert helper.class_name("MyApp.Geo.Point") == "Point"


class TestPaths:
    """Test the mapping of output names to modules and files."""

    def test_module_path(self):
        assert helper.module_path("MyApp.Geo.PointTestData") == "my_app.geo.point_test_data"

    def test_module_path_top_level(self):
        assert helper.module_path("Point") == "point"

    def test_target_path(self):
        assert helper.target_path("MyApp.Geo.Point") == os.path.join("my_app", "geo", "point.py")

    def test_companion_name(self):
        assert helper.test_data_module_from_data_module("Geo.Point") == "Geo.PointTestData"

    def test_replace_thrift_suffix(self):
        assert helper.replace_thrift_suffix("some-module.thrift") == "some_module"
        assert helper.replace_thrift_suffix("plain") == "plain"
