import random
import string

import pytest

from dockdocs.PARSERS.annotation_resolver import AnnotationResolver
from dockdocs.PARSERS.config_parser import ConfigParser
from dockdocs.PARSERS.dockerfile_parser import DockerfileParser
from dockdocs.REGISTRY.image_reference import ImageReference
from dockdocs.UTILS.injector import inject
from dockdocs.errors import ConfigError, MarkerNotFoundError

DOCKERFILE_FRAGMENTS = [
    "FROM alpine\n", "ARG ", "ENV ", "LABEL ", "EXPOSE ", "RUN <<EOF\n", "EOF\n",
    "# @name: ", "# @description: ", "# @default: ", "# @required: true\n",
    "A=1 ", "B=\"two words\" ", "'", "\"", "\\\n", "`", "=", "\n", "\n\n", "# escape=`\n",
]


def random_string(length):
    return ''.join(random.choice(string.printable) for _ in range(length))


def random_dockerfile():
    return ''.join(random.choice(DOCKERFILE_FRAGMENTS) for _ in range(random.randint(0, 60)))


def test_fuzz_dockerfile_parser():
    parser = DockerfileParser()
    resolver = AnnotationResolver()
    for _ in range(200):
        content = random_string(random.randint(0, 1000)) if random.random() < 0.5 else random_dockerfile()
        ast = parser.parse_from_string(content)
        doc = resolver.resolve(ast)
        pairs = sum(len(i.raw_args) for i in ast.instructions)
        assert len(doc.items) == pairs


def test_fuzz_config_parser():
    parser = ConfigParser()
    for _ in range(100):
        content = random_string(random.randint(0, 1000))
        try:
            parser.parse_from_string(content)
        except ConfigError:
            pass


def test_fuzz_injector():
    for _ in range(100):
        content = random_string(random.randint(0, 300))
        try:
            result = inject(content, "", "x")
        except MarkerNotFoundError:
            continue
        assert "x" in result


@pytest.mark.parametrize("seed", range(5))
def test_fuzz_image_reference(seed):
    rng = random.Random(seed)
    for _ in range(100):
        reference = ''.join(rng.choice(string.ascii_letters + string.digits + ":/@._-") for _ in range(rng.randint(0, 40)))
        try:
            ImageReference.parse(reference)
        except ValueError:
            pass
