import base64
import logging
import traceback
from oauthlib.oauth2 import BackendApplicationClient
from requests_oauthlib import OAuth2Session
from grpcschema.constants import LOG_FILE

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class helper:
    """Shared logging and call-auth support for the reflection classes."""

    def __init__(self, log_to_console=False, log_file=LOG_FILE):
        self.logger = logging.getLogger("FunctionLogger")
        self.logger.setLevel(logging.DEBUG)

        # Handlers are process-wide, only the first instance installs them
        if self.logger.handlers:
            return
        handlers = [logging.FileHandler(log_file, delay=True)]
        if log_to_console:
            handlers.append(logging.StreamHandler())
        for handler in handlers:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            self.logger.addHandler(handler)

    def log(self, function_name: str, args=None, output=None, exception: Exception = None):
        self.logger.info(f"Function: {function_name}")
        if args:
            self.logger.debug(f"Input args: {args}")
        if output is not None:
            self.logger.debug(f"Output: {output}")
        if exception is not None:
            self.logger.error(f"Exception in function '{function_name}': {exception}")
            self.logger.error(''.join(traceback.format_exception(type(exception), exception, exception.__traceback__)))

    def get_oauth2_token(self, client_id, client_secret, token_url, scope=None):
        session = OAuth2Session(client=BackendApplicationClient(client_id=client_id), scope=scope)
        return session.fetch_token(token_url=token_url, client_id=client_id, client_secret=client_secret)

    def convert_auth(self, data):
        """
        Turns an auth config dict into the ``(key, value)`` metadata pair
        attached to every reflection call, or ``None`` when no auth is set.

        ``auth_type`` is one of ``api_key``, ``bearer_token``, ``basic_auth``
        or ``oauth2`` (client credentials grant). Raises ``ValueError`` for
        incomplete or unsupported settings and failed token requests.
        """
        if not isinstance(data, dict) or not data.get('auth_type'):
            return None

        builders = {
            'api_key': self._api_key_auth,
            'bearer_token': self._bearer_auth,
            'basic_auth': self._basic_auth,
            'oauth2': self._oauth2_auth,
        }
        auth_type = data['auth_type']
        if auth_type not in builders:
            raise ValueError(f"Unsupported auth_type '{auth_type}'")
        try:
            return builders[auth_type](data)
        except KeyError as e:
            raise ValueError(f"Missing {auth_type} setting {e}") from e

    def _api_key_auth(self, data):
        # gRPC rejects metadata keys with upper-case letters
        return data['key_name'].lower(), data['key_value']

    def _bearer_auth(self, data):
        return 'authorization', f"Bearer {data['token']}"

    def _basic_auth(self, data):
        pair = f"{data.get('username')}:{data.get('password')}".encode('utf-8')
        return 'authorization', f"Basic {base64.b64encode(pair).decode('utf-8')}"

    def _oauth2_auth(self, data):
        scope = data.get('scope')
        if isinstance(scope, str):
            scope = [scope]
        elif scope is not None:
            scope = list(scope)

        try:
            token = self.get_oauth2_token(data['client_id'], data['client_secret'], data['token_url'], scope)
        except KeyError:
            raise
        except Exception as e:
            self.log(function_name='convert_auth', args=[data['token_url']], exception=e)
            raise ValueError(f"OAuth2 token request failed: {e}") from e

        if not token or 'access_token' not in token:
            raise ValueError("Token endpoint returned no access_token")
        return 'authorization', f"Bearer {token['access_token']}"
