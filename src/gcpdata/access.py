"""
Authenticated access to the Bigtable admin and Firestore REST services.

CloudAccess owns the credentials, the configuration and the built service
handles.  It is the composition root: make one, configure it, then ask it for a
forwarder, which gets the service handles passed in and holds no reference back.
There is deliberately no module level instance, an application that wants one
makes one.
"""
from collections.abc import Iterable
from pathlib import Path
import copy
import json
import logging
import os

import google.auth
import google.auth.exceptions
from google.auth.credentials import AnonymousCredentials
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build

from .errors import ArgumentError, GcpDataError
from .forwarder import OperationForwarder
from .operations import SERVICES
from .transport import DiscoveryInvoker

log = logging.getLogger(__name__)

# emulator host env vars per discovery api
_EMULATOR_ENV = {
    "firestore": "FIRESTORE_EMULATOR_HOST",
    "bigtableadmin": "BIGTABLE_EMULATOR_HOST",
}
_PROJECT_ENV = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")


class CloudAccess():
    """
    Class encapsulating authenticated access to Google Cloud.
    Credentials are looked for in this order:
        a service account key file (keyfile),
        a cached authorized user token (cache), refreshed if it has expired,
        the OAuth installed app flow from a client secrets file (secrets),
        which will open the confirmation screens and cache the result,
        and finally application default credentials.
    An emulator host for a service, configured or from the usual env var,
    means that service is built with anonymous credentials against the emulator.
    """

    __SCOPES = {
        "cloud-platform": "https://www.googleapis.com/auth/cloud-platform",
        "cloud-platform-ro": "https://www.googleapis.com/auth/cloud-platform.read-only",
        "bigtable-admin": "https://www.googleapis.com/auth/bigtable.admin",
        "bigtable-admin-cluster": "https://www.googleapis.com/auth/bigtable.admin.cluster",
        "bigtable-admin-instance": "https://www.googleapis.com/auth/bigtable.admin.instance",
        "bigtable-admin-table": "https://www.googleapis.com/auth/bigtable.admin.table",
        "datastore": "https://www.googleapis.com/auth/datastore",
    }
    __SCOPE_URL_PREFIX = "https://www.googleapis.com/"
    __DEFAULT_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

    __DEFAULT_AUTH_PROMPT_MSG = "Please visit this URL to authorize access: {url}"
    __DEFAULT_AUTH_FLOW_SUCCESS_MSG = "Authorization complete, you may close this window."
    __DEFAULT_SECRETS = Path.home() / "gcp_client_secrets.json"
    __DEFAULT_CACHE = Path.home() / "gcp_tokens.json"

    def __init__(self, config: dict|None = None) -> None:
        self.reset()
        if config:
            self.config = config

    def __bool__(self) -> bool:
        """True is we have credentials"""
        return self.connected

    def __str__(self) -> str:
        state = "Connected" if self.connected else "Disconnected"
        return f"{state}:{self.project}:{str(self.__scopes)}"

    def __repr__(self) -> str:
        return f"{str(self.__class__)}:{str(self)}"

    @classmethod
    def get_scope(cls, scope: str) -> str:
        """
        Get a scope based on simplified label.
        A raw URL will also be expected.
        """
        s = str(scope)
        sc = cls.__SCOPES.get(s, "")
        if not sc and s.startswith(cls.__SCOPE_URL_PREFIX):
            sc = s
        return sc

    def reset(self) -> None:
        """
        Reset all connection state to defaults.
        """
        self.__secrets = self.__DEFAULT_SECRETS
        self.__cache = self.__DEFAULT_CACHE
        self.__keyfile = None
        self.__creds = None
        self.__default_project = None
        self.__scopes = list(self.__DEFAULT_SCOPES)
        self.__services = {}
        self.__project = None
        self.__hosts = {}
        self.auth_server = 'localhost'
        self.auth_port = 0
        self.auth_prompt_msg = self.__DEFAULT_AUTH_PROMPT_MSG
        self.auth_flow_success_msg = self.__DEFAULT_AUTH_FLOW_SUCCESS_MSG
        self.num_retries = 0
        self.timeout = None
        self.operation_timeouts = {}

    def clear(self) -> None:
        """Drop credentials and services, keeping configuration"""
        self.__creds = None
        self.__services = {}

    @property
    def connected(self) -> bool:
        """
        Do we hold credentials?  Service account and default credentials are
        not 'valid' until their first refresh, which the transport does on the
        first call, so holding them is enough.
        """
        return self.__creds is not None

    @property
    def creds(self):
        """Current credentials or None"""
        return self.__creds

    @property
    def services(self) -> dict[str, Resource]:
        """
        Current built services.  Can be empty.
        """
        return self.__services

    @property
    def project(self) -> str|None:
        """
        Project used for the forwarder.  Configured value first, then the
        environment, then whatever application default credentials reported.
        """
        if self.__project:
            return self.__project
        for env in _PROJECT_ENV:
            p = os.environ.get(env)
            if p:
                return p
        return self.__default_project

    @project.setter
    def project(self, value: str|None) -> None:
        self.__project = str(value) if value else None

    @property
    def client_secrets(self) -> Path:
        """
        Path to client secrets file as provided by Google when generating OAuth credentials.
        """
        return self.__secrets

    @client_secrets.setter
    def client_secrets(self, value: Path|str) -> None:
        """
        Set path to client secrets.
        If this changes we need to reconnect as we have new credentials.
        """
        val = value if isinstance(value, Path) else Path(str(value))
        if val != self.__secrets:
            self.__secrets = val
            if self.connected:
                self.connect()

    @property
    def cred_cache(self) -> Path:
        """
        Path to local credential cache to not have to do full authentication each time.
        """
        return self.__cache

    @cred_cache.setter
    def cred_cache(self, value: Path|str) -> None:
        val = value if isinstance(value, Path) else Path(str(value))
        if val != self.__cache:
            self.__cache = val
            if self.connected:
                self.connect()

    @property
    def keyfile(self) -> Path|None:
        """Service account JSON key file, takes precedence over everything else"""
        return self.__keyfile

    @keyfile.setter
    def keyfile(self, value: Path|str|None) -> None:
        val = None if value is None else value if isinstance(value, Path) else Path(str(value))
        if val != self.__keyfile:
            self.__keyfile = val
            if self.connected:
                self.connect()

    @property
    def scopes(self) -> list[str]:
        """
        The scopes requested or to be requested on next authentication sequence.
        """
        return self.__scopes

    @scopes.setter
    def scopes(self, value: None|list[str]|str) -> None:
        """
        Override the list of scopes.  Unknown labels are dropped.
        Credentials are dropped as they were issued for the old scopes.
        """
        slist = []
        if value is not None:
            vals = [value] if isinstance(value, str) or not isinstance(value, Iterable) else value
            for v in vals:
                s = self.get_scope(str(v))
                if s and s not in slist:
                    slist.append(s)
        self.__scopes = slist or list(self.__DEFAULT_SCOPES)
        self.clear()

    def emulator_host(self, api: str) -> str|None:
        """Configured emulator (or other endpoint) host for an api, falling back to its env var"""
        host = self.__hosts.get(api)
        if host:
            return host
        env = _EMULATOR_ENV.get(api)
        return os.environ.get(env) if env else None

    @property
    def hosts(self) -> dict[str, str]:
        return self.__hosts

    @hosts.setter
    def hosts(self, value: dict[str, str]|None) -> None:
        self.__hosts = {str(k): str(v) for k, v in dict(value or {}).items() if v}
        self.__services = {}

    @property
    def config(self) -> dict:
        """
        Get all configuration state as a dict.
        Convenience for getting it all at once for pushing into a json, toml, ini, etc, file.
        """
        config = {
            'project': self.__project,
            'secrets': str(self.__secrets),
            'cache': str(self.__cache),
            'keyfile': str(self.__keyfile) if self.__keyfile else None,
            'scopes': list(self.__scopes),
            'server': self.auth_server,
            'port': self.auth_port,
            'hosts': dict(self.__hosts),
            'num_retries': self.num_retries,
            'timeout': self.timeout,
            'operation_timeouts': dict(self.operation_timeouts),
        }
        return config

    @config.setter
    def config(self, config: dict) -> None:
        """
        Set configuration state from a dict.
        Convenience method for inserting state pulled from a config file or equivalent.
        Keys that are missing or None are left alone.
        """
        reconnect = False
        v = config.get('project', None)
        if v is not None:
            self.project = v
        v = config.get('port', None)
        if v is not None:
            self.auth_port = int(v)
        v = config.get('server', None)
        if v is not None:
            self.auth_server = str(v)
        v = config.get('scopes', [])
        if v:
            self.scopes = v
            reconnect = True
        v = config.get('cache', None)
        if v is not None:
            self.__cache = Path(v)
            reconnect = True
        v = config.get('secrets', None)
        if v is not None:
            self.__secrets = Path(v)
            reconnect = True
        v = config.get('keyfile', None)
        if v is not None:
            self.__keyfile = Path(v)
            reconnect = True
        v = config.get('hosts', None)
        if v is not None:
            self.hosts = v
        v = config.get('num_retries', None)
        if v is not None:
            self.num_retries = int(v)
        v = config.get('timeout', None)
        if v is not None:
            self.timeout = float(v)
        v = config.get('operation_timeouts', None)
        if v is not None:
            self.operation_timeouts = {str(k): float(t) for k, t in dict(v).items()}
        v = config.get('auth_prompt_msg', None)
        if v is not None:
            self.auth_prompt_msg = str(v)
        v = config.get('flow_success_msg', None)
        if v is not None:
            self.auth_flow_success_msg = str(v)
        if reconnect and self.connected:
            self.connect()

    def _cached_user_creds(self, requested_scopes: list[str]) -> Credentials|None:
        """
        Authorized user credentials from the cache file if they cover the scopes.
        A cache for other scopes is deleted, it is no use to us.
        """
        if not (self.__cache.exists() and self.__cache.is_file()):
            return None
        cf = self.__cache.resolve()
        with open(cf, 'r', encoding='utf-8') as f:
            scopes = json.load(f).get('scopes', [])
        if not all(s in scopes for s in requested_scopes):
            self.__cache.unlink()
            return None
        creds = Credentials.from_authorized_user_file(str(cf), requested_scopes)
        if not creds.valid and creds.refresh_token:
            try:
                creds.refresh(Request())
            except (google.auth.exceptions.RefreshError, google.auth.exceptions.TransportError) as e:
                log.warning("failed to refresh stored creds: %s...deleting cred cache and re-authorizing", e)
        if not creds.valid:
            self.__cache.unlink(missing_ok=True)
            return None
        return creds

    def _save_user_creds(self, creds: Credentials, requested_scopes: list[str]) -> None:
        # scopes isnt needed for a refresh, it is there so the next connect
        # can tell whether the cache covers what it wants
        user_info = {'refresh_token': creds.refresh_token, 'client_id': creds.client_id,
                     'client_secret': creds.client_secret, 'scopes': requested_scopes}
        with open(self.__cache.resolve(), 'w', encoding='utf-8') as f:
            json.dump(user_info, f, ensure_ascii=False, indent=2)

    def connect(self) -> bool:
        """
        Establish new credentials.
        User credentials from the OAuth flow are saved in the cache file to reuse
        on subsequent invocations.
        """
        self.__creds = None
        self.__services = {}
        requested_scopes = copy.copy(self.__scopes)
        if self.__keyfile is not None:
            self.__creds = service_account.Credentials.from_service_account_file(
                str(self.__keyfile), scopes=requested_scopes)
            self.__default_project = self.__creds.project_id
            return self.connected

        self.__creds = self._cached_user_creds(requested_scopes)
        if not self.connected and self.__secrets.exists() and self.__secrets.is_file():
            flow = InstalledAppFlow.from_client_secrets_file(str(self.__secrets), requested_scopes)
            self.__creds = flow.run_local_server(host=self.auth_server, port=self.auth_port,
                                                 authorization_prompt_message=self.auth_prompt_msg,
                                                 success_message=self.auth_flow_success_msg)
            if self.connected:
                self._save_user_creds(self.__creds, requested_scopes)
        if not self.connected:
            # final hail mary, GOOGLE_APPLICATION_CREDENTIALS, gcloud, metadata server
            try:
                self.__creds, self.__default_project = google.auth.default(scopes=requested_scopes)
            except google.auth.exceptions.DefaultCredentialsError as e:
                log.warning("no credentials available: %s", e)
        return self.connected

    def get_service(self, name: str, version: str) -> Resource|None:
        """
        Build the requested service if not already available, connecting if required.
        An emulated service uses anonymous credentials and never connects.
        Can return None if no credentials could be found.
        """
        id = f'{name}:{version}'
        s = self.__services.get(id, None)
        if s is not None:
            return s
        host = self.emulator_host(name)
        if host:
            endpoint = host if "://" in host else f"http://{host}"
            s = build(name, version, credentials=AnonymousCredentials(),
                      client_options={'api_endpoint': endpoint}, cache_discovery=False)
        else:
            if not self.connected:
                self.connect()
            if not self.connected:
                return None
            s = build(name, version, credentials=self.__creds, cache_discovery=False)
        if s:
            log.debug("built %s service", id)
            self.__services[id] = s
        return s

    def invoker(self) -> DiscoveryInvoker:
        """
        Build every service handle the operations need and wrap them in an invoker.
        Bigtable instance and table admin share the one bigtableadmin service.
        """
        services = {}
        for handle, (name, version) in SERVICES.items():
            s = self.get_service(name, version)
            if s is None:
                raise GcpDataError(f"Unable to obtain credentials for the {name} service")
            services[handle] = s
        return DiscoveryInvoker(services, self.__creds, self.num_retries)

    def forwarder(self, project_id: str|None = None) -> OperationForwarder:
        """The usual way in: a forwarder for the project wired to this access"""
        invoker = self.invoker()
        # default credentials may only report the project once connected
        project = project_id or self.project
        if not project:
            raise ArgumentError("No project configured, set project or GOOGLE_CLOUD_PROJECT")
        return OperationForwarder(project, invoker, self.timeout, self.operation_timeouts)
