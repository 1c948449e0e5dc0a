"""
Tests for src/shared/media/urls.py
"""

import unittest

from src.shared.media.models import CustomTransform, ImageDescriptor
from src.shared.media.urls import (
    apply_custom_transform,
    build_image_url,
    build_transformation,
    is_absolute_url,
    join_api_url,
    replace_extension,
)

CLOUDINARY_URL = "https://res.cloudinary.com/demo/image/upload/v1590000000/sample.jpg"


def _image(url, custom=None):
    raw = {"id": 1, "mime": "image/jpeg", "url": url}
    if custom is not None:
        raw["__custom"] = custom
    return ImageDescriptor.from_mapping(raw)


class TestJoinApiUrl(unittest.TestCase):
    def test_relative_url_gets_api_prefix(self):
        self.assertEqual(
            join_api_url("http://localhost:1337", "/uploads/a.png"),
            "http://localhost:1337/uploads/a.png",
        )

    def test_no_double_slash(self):
        self.assertEqual(
            join_api_url("http://localhost:1337/", "/uploads/a.png"),
            "http://localhost:1337/uploads/a.png",
        )

    def test_absolute_url_is_verbatim(self):
        self.assertEqual(join_api_url("http://localhost:1337", CLOUDINARY_URL), CLOUDINARY_URL)

    def test_is_absolute_url(self):
        self.assertTrue(is_absolute_url("http://a/b.png"))
        self.assertTrue(is_absolute_url("HTTPS://a/b.png"))
        self.assertFalse(is_absolute_url("/uploads/http-image.png"))


class TestCustomTransform(unittest.TestCase):
    def test_transformation_string(self):
        self.assertEqual(build_transformation(CustomTransform(width=200, height=100)), "w_200,h_100,c_scale")
        self.assertEqual(build_transformation(CustomTransform(height=100)), "h_100,c_scale")

    def test_resize_replaces_version_slot(self):
        url = apply_custom_transform(CLOUDINARY_URL, CustomTransform(width=200))
        self.assertEqual(url, "https://res.cloudinary.com/demo/image/upload/w_200,c_scale/sample.jpg")

    def test_resize_inserts_when_no_slot(self):
        url = apply_custom_transform(
            "https://res.cloudinary.com/demo/image/upload/sample.jpg",
            CustomTransform(width=50, height=60),
        )
        self.assertEqual(url, "https://res.cloudinary.com/demo/image/upload/w_50,h_60,c_scale/sample.jpg")

    def test_format_replaces_extension(self):
        url = apply_custom_transform(CLOUDINARY_URL, CustomTransform(format="webp"))
        self.assertEqual(url, "https://res.cloudinary.com/demo/image/upload/v1590000000/sample.webp")

    def test_resize_and_format(self):
        url = apply_custom_transform(CLOUDINARY_URL, CustomTransform(width=200, format="png"))
        self.assertEqual(url, "https://res.cloudinary.com/demo/image/upload/w_200,c_scale/sample.png")

    def test_unknown_shape_skips_resize(self):
        url = "http://localhost:1337/uploads/a.png"
        self.assertEqual(apply_custom_transform(url, CustomTransform(width=200)), url)

    def test_unknown_shape_still_applies_format(self):
        url = apply_custom_transform("http://localhost:1337/uploads/a.png", CustomTransform(width=10, format="jpg"))
        self.assertEqual(url, "http://localhost:1337/uploads/a.jpg")

    def test_query_string_preserved(self):
        url = apply_custom_transform(CLOUDINARY_URL + "?token=x", CustomTransform(format="webp"))
        self.assertTrue(url.endswith("/sample.webp?token=x"))

    def test_replace_extension_without_dot(self):
        self.assertEqual(replace_extension("sample", "png"), "sample.png")
        self.assertEqual(replace_extension("a.b.jpg", "png"), "a.b.png")


class TestBuildImageUrl(unittest.TestCase):
    def test_relative_without_custom(self):
        self.assertEqual(
            build_image_url(_image("/uploads/a.png"), "http://cms.example.com"),
            "http://cms.example.com/uploads/a.png",
        )

    def test_absolute_with_custom(self):
        url = build_image_url(_image(CLOUDINARY_URL, {"width": 300}), "http://cms.example.com")
        self.assertEqual(url, "https://res.cloudinary.com/demo/image/upload/w_300,c_scale/sample.jpg")


if __name__ == "__main__":
    unittest.main()
