"""
BLANG editor configuration
Values come from the environment, optionally seeded from a .env file
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class BlangSettings:
    """Runtime settings for the string editor"""
    resource_suffix: str = ".blang"
    default_language: str = "new"
    new_string_prefix: str = "#new_string_"
    decrypt_key_template: str = "strings/{language}.blang"
    api_host: str = "127.0.0.1"
    api_port: int = 5000

    @classmethod
    def from_env(cls) -> "BlangSettings":
        """Build settings from BLANG_* environment variables"""
        return cls(
            resource_suffix=os.getenv("BLANG_RESOURCE_SUFFIX", cls.resource_suffix),
            default_language=os.getenv("BLANG_DEFAULT_LANGUAGE", cls.default_language),
            new_string_prefix=os.getenv("BLANG_NEW_STRING_PREFIX", cls.new_string_prefix),
            decrypt_key_template=os.getenv("BLANG_DECRYPT_KEY_TEMPLATE", cls.decrypt_key_template),
            api_host=os.getenv("BLANG_API_HOST", cls.api_host),
            api_port=int(os.getenv("BLANG_API_PORT", str(cls.api_port))),
        )

    def decrypt_key(self, language: str) -> str:
        """Context key handed to the decryptor for a language's table"""
        return self.decrypt_key_template.format(language=language)


settings = BlangSettings.from_env()
