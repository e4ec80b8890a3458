# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Unit tests for image reference validation.
"""
import pytest
from dockdocs.REGISTRY.image_reference import ImageReference

DIGEST = "sha256:" + "a" * 64


class TestImageReference:
    """Tests for ImageReference parsing."""

    def test_parse_simple_name(self):
        """Test parsing a simple image name."""
        ref = ImageReference.parse("nginx")
        assert ref.registry == "docker.io"
        assert ref.repository == "library/nginx"
        assert ref.tag == "latest"

    def test_parse_with_tag(self):
        ref = ImageReference.parse("nginx:1.21")
        assert ref.repository == "library/nginx"
        assert ref.tag == "1.21"

    def test_parse_user_image(self):
        ref = ImageReference.parse("myuser/myimage:v1")
        assert ref.registry == "docker.io"
        assert ref.repository == "myuser/myimage"
        assert ref.tag == "v1"

    def test_parse_full_reference(self):
        """Test parsing full registry reference."""
        ref = ImageReference.parse("gcr.io/project/image:latest")
        assert ref.registry == "gcr.io"
        assert ref.repository == "project/image"

    def test_parse_with_digest(self):
        ref = ImageReference.parse(f"nginx@{DIGEST}")
        assert ref.repository == "library/nginx"
        assert ref.digest == DIGEST
        assert ref.tag is None

    def test_parse_registry_with_port(self):
        """A port in the registry is not mistaken for a tag."""
        ref = ImageReference.parse("localhost:5000/myimage")
        assert ref.registry == "localhost:5000"
        assert ref.repository == "myimage"
        assert ref.tag == "latest"

    def test_full_and_short_name(self):
        ref = ImageReference.parse("nginx:1.25")
        assert ref.full_name == "docker.io/library/nginx:1.25"
        assert ref.short_name == "nginx:1.25"
        assert str(ref) == "nginx:1.25"
        assert ImageReference.parse("ghcr.io/org/app:1").short_name == "ghcr.io/org/app:1"


class TestInvalidReferences:
    """References the analysis tools would reject."""

    @pytest.mark.parametrize("reference", [
        "",
        "   ",
        " nginx",
        "nginx:",
        "nginx:bad tag",
        "Nginx:latest",
        "my--image/../x",
        "nginx@sha256:abc123",
        "nginx:-leading-dash",
    ])
    def test_rejected(self, reference):
        with pytest.raises(ValueError):
            ImageReference.parse(reference)
