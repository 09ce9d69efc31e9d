"""HTTP client for the remote auth service.

The login flow only needs two operations from the service, both exposed by
:class:`AuthServiceClient`:

* :meth:`~AuthServiceClient.write` -- ``PUT`` a JSON body to a logical path
  (used to request the authorization URL).
* :meth:`~AuthServiceClient.read_with_data` -- ``GET`` a logical path with
  query data (used to exchange the callback ``code``/``state``).

Example::

    from oidclogin.client import AuthServiceClient

    with AuthServiceClient(settings) as client:
        secret = client.write("auth/oidc/oidc/auth_url", {"role": "dev", ...})
"""

from oidclogin.client.sync_client import AuthServiceClient

__all__ = ["AuthServiceClient"]
