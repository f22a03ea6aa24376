"""
Application configuration.
Secrets can be loaded from Azure Key Vault via the VM's Managed Identity when
KEY_VAULT_NAME is set; otherwise everything comes from environment variables /
.env file so local development works without Key Vault access.

Settings are built once by ``load_settings()`` at startup and handed to the
application context; nothing in the codebase reads a module-level singleton.
"""
import os
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key Vault → environment variable mapping
# Secret names in Key Vault use lowercase-dashes; env vars use UPPER_SNAKE.
# ---------------------------------------------------------------------------
_KV_TO_ENV: dict[str, str] = {
    "database-url":              "DATABASE_URL",
    "redis-url":                 "REDIS_URL",
    "jwt-secret-key":            "JWT_SECRET_KEY",
    "sendgrid-api-key":          "SENDGRID_API_KEY",
    "sendgrid-from-email":       "SENDGRID_FROM_EMAIL",
    "sendgrid-from-name":        "SENDGRID_FROM_NAME",
    "storage-connection-string": "AZURE_BLOB_CONNECTION_STRING",
    "azure-storage-account":     "AZURE_STORAGE_ACCOUNT",
}


def _load_from_key_vault(vault_name: str) -> int:
    """
    Fetch secrets from Azure Key Vault and inject them into os.environ.
    Uses ManagedIdentityCredential on the VM, DefaultAzureCredential elsewhere.
    Returns the number of secrets successfully loaded.
    """
    try:
        from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
        from azure.keyvault.secrets import SecretClient
        from azure.core.exceptions import ResourceNotFoundError

        vault_url = f"https://{vault_name}.vault.azure.net/"

        try:
            credential = ManagedIdentityCredential()
            # Quick test – will raise if no managed identity
            credential.get_token("https://vault.azure.net/.default")
        except Exception:
            credential = DefaultAzureCredential()

        client = SecretClient(vault_url=vault_url, credential=credential)
        loaded = 0

        for kv_name, env_name in _KV_TO_ENV.items():
            # Key Vault always wins over env vars / .env
            try:
                secret = client.get_secret(kv_name)
                if secret.value:
                    os.environ[env_name] = secret.value
                    loaded += 1
            except ResourceNotFoundError:
                pass
            except Exception as e:
                logger.warning("KV: could not load '%s': %s", kv_name, e)

        return loaded

    except Exception as e:
        logger.warning("Key Vault load failed (%s); falling back to environment / .env file.", e)
        return 0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    KEY_VAULT_NAME: str = ""

    DATABASE_URL: str
    DB_ECHO: bool = False

    # Redis cache
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TTL_SECONDS: int = 0  # 0 = no expiry, invalidated explicitly

    # JWT
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Azure Blob Storage
    AZURE_BLOB_CONNECTION_STRING: str = ""
    AZURE_STORAGE_ACCOUNT: str = ""
    AZURE_BLOB_CONTAINER: str = "harajuku-uploads"

    # SendGrid Email
    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = "noreply@harajuku.mx"
    SENDGRID_FROM_NAME: str = "Harajuku"


def load_settings(**overrides) -> Settings:
    """Build the settings object, seeding os.environ from Key Vault first if configured."""
    vault_name = os.environ.get("KEY_VAULT_NAME", "")
    if vault_name:
        n = _load_from_key_vault(vault_name)
        if n:
            logger.info("Loaded %d secrets from Key Vault '%s'", n, vault_name)

    settings = Settings(**overrides)

    # Validate critical security settings
    if not settings.JWT_SECRET_KEY:
        raise ValueError(
            "JWT_SECRET_KEY is not set. It must exist in Key Vault ('jwt-secret-key') "
            "or as a JWT_SECRET_KEY environment variable. "
            "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    return settings
