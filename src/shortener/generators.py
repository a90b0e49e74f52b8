"""Short-code candidate generators.

Every generator returns a candidate only; uniqueness is enforced by
``shortener.uniqueness`` against the link store.
"""
import hashlib
import secrets
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from string import ascii_lowercase, ascii_uppercase, digits

from shortener.schemas import Algorithm, CustomOptions

BASE62_ALPHABET = digits + ascii_uppercase + ascii_lowercase
SIMILAR_CHARACTERS = frozenset('0Oo1lI')


@dataclass(frozen=True)
class GenerationContext:
    original_url: str = ''


class CodeGenerator(ABC):
    algorithm: Algorithm
    default_length: int

    @abstractmethod
    def generate(self, context: GenerationContext) -> str:
        ...


def base62_encode(data: bytes) -> str:
    number = int.from_bytes(data, 'big')
    if number == 0:
        return BASE62_ALPHABET[0]
    chars = []
    while number:
        number, rem = divmod(number, 62)
        chars.append(BASE62_ALPHABET[rem])
    return ''.join(reversed(chars))


class HashCodeGenerator(CodeGenerator):
    algorithm = Algorithm.HASH
    default_length = 6

    def generate(self, context: GenerationContext) -> str:
        # timestamp and salt make repeated calls for the same URL differ
        payload = f'{context.original_url}{time.time_ns()}{secrets.token_hex(8)}'
        digest = hashlib.sha256(payload.encode()).digest()
        return base62_encode(digest)[:self.default_length]


class UuidCodeGenerator(CodeGenerator):
    algorithm = Algorithm.UUID
    default_length = 8

    def generate(self, context: GenerationContext) -> str:
        return uuid.uuid4().hex[:self.default_length]


class CustomCodeGenerator(CodeGenerator):
    algorithm = Algorithm.CUSTOM
    default_length = 7

    def __init__(self, options: CustomOptions | None = None):
        self.options = options or CustomOptions()
        self.alphabet = build_alphabet(self.options)

    def generate(self, context: GenerationContext) -> str:
        return ''.join(secrets.choice(self.alphabet) for _ in range(self.options.length))


def build_alphabet(options: CustomOptions) -> str:
    chars = ''
    if options.include_lowercase:
        chars += ascii_lowercase
    if options.include_uppercase:
        chars += ascii_uppercase
    if options.include_numbers:
        chars += digits
    if options.exclude_similar:
        chars = ''.join(c for c in chars if c not in SIMILAR_CHARACTERS)
    return chars


GENERATORS: dict[Algorithm, type[CodeGenerator]] = {
    Algorithm.HASH: HashCodeGenerator,
    Algorithm.UUID: UuidCodeGenerator,
    Algorithm.CUSTOM: CustomCodeGenerator,
}


def get_generator(algorithm: Algorithm, options: CustomOptions | None = None) -> CodeGenerator:
    if algorithm is Algorithm.CUSTOM:
        return CustomCodeGenerator(options)
    return GENERATORS[algorithm]()


def describe_algorithms() -> list[dict]:
    return [
        {
            'name': Algorithm.HASH.value,
            'description': 'SHA-256 digest of the URL with timestamp and salt, base62 encoded',
            'default_length': HashCodeGenerator.default_length,
            'supports_custom_options': False,
        },
        {
            'name': Algorithm.UUID.value,
            'description': 'Random UUID hex prefix',
            'default_length': UuidCodeGenerator.default_length,
            'supports_custom_options': False,
        },
        {
            'name': Algorithm.CUSTOM.value,
            'description': 'Random code from a configurable alphabet',
            'default_length': CustomCodeGenerator.default_length,
            'supports_custom_options': True,
            'options': {
                'length': 'Code length (4-12 characters)',
                'include_numbers': 'Include numbers (true/false)',
                'include_uppercase': 'Include uppercase letters (true/false)',
                'include_lowercase': 'Include lowercase letters (true/false)',
                'exclude_similar': 'Exclude similar looking characters 0 O o 1 l I (true/false)',
            },
        },
    ]
