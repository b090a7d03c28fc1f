# capellaextras

A small Python client for the Couchbase Capella v4 management API. It also
has an action that builds deferred indexes on a cluster.

## Installation

```
pip install capellaextras
```

To run the test suite, install the test extra:

```
pip install "capellaextras[test]"
pytest
```

## The API client

`capellaextras.client.Client` sends JSON requests to the Capella API. By
default it uses a `requests` session built by `make_session`, which retries
connection failures, status 429 and 5xx responses (except 501) with
exponential backoff. The default base URL is `DEFAULT_BASE_URL`, the public
Capella v4 endpoint. A base URL given without a scheme gets `https://`.

```python
from capellaextras.client import Client, BearerTokenAuth

client = Client(auth=BearerTokenAuth(token="token"))
payload = client.get("v4/organizations", query={"page": "1"}, decode=True)
```

`get`, `post`, `put`, `patch` and `delete` all go through `Client.do`:

- Bodies are sent as JSON with `Content-Type: application/json`. Every
  request sends `Accept: application/json` and the client's `user_agent`.
- A path can be relative to the base URL or a full `http://` or `https://`
  URL. Query parameters are merged into the URL.
- With no `decode` argument you get back the `requests.Response`. With
  `decode=True` you get the parsed JSON body. With a callable you get the
  callable's result on the parsed body. An empty or `null` body gives `None`.
- A response outside the 2xx range raises `ApiError` when its JSON body holds
  a `code` or a `message`. Otherwise it raises `CapellaError` with the status
  and body. Network failures and invalid JSON also raise `CapellaError`.
  `ApiError` is a subclass of `CapellaError`. Both carry the `response` and
  its `status_code`.

`APIKeySecretAuth` sends a key and a secret in headers instead of a bearer
token. The headers are `X-Client-Id` and `X-Client-Secret` unless you give
`header_key_name` and `header_secret_name`:

```python
from capellaextras.client import APIKeySecretAuth, Client

client = Client(auth=APIKeySecretAuth(key="placeholder", secret="secret"))
```

Any object with an `apply(request)` method that edits the prepared request's
headers can act as an authenticator.

`make_session(retry_max, retry_wait_min, retry_wait_max)` builds a session with
other retry settings. Pass it to `Client` as `session`.

## Index helpers

`capellaextras.indexes` wraps two query-service endpoints:

- `get_index_build_status(client, IndexBuildStatusRequest(...))` returns an
  `IndexBuildStatusResponse` holding the `status` of one index.
- `build_deferred_indexes(client, IndexBuildRequest(...))` sends a
  `BUILD INDEX` statement and returns an `IndexBuildResponse` with an optional
  `error`. `build_index_statement(request)` returns that statement, for
  example ``BUILD INDEX ON `bucket`.`scope`.`collection`(idx_a, idx_b)``.

Both responses reject JSON fields they do not know, and raise `CapellaError`
when that happens.

## Building deferred indexes

`capellaextras.actions.BuildIndexAction` looks up the status of each index
named in a `BuildIndexConfig` and builds the ones in the `Created` state. If
you leave out `scope_name` or `collection_name`, `_default` is used. Progress
messages go to the callback you pass, and `invoke` returns the names of the
indexes it submitted. An empty list means none needed building.

```python
from capellaextras.actions import BuildIndexAction, BuildIndexConfig

action = BuildIndexAction()
action.configure(client)
built = action.invoke(
    BuildIndexConfig(
        organization_id="org-id",
        project_id="project-id",
        cluster_id="cluster-id",
        bucket_name="travel-sample",
        index_names=["idx_name", "idx_city"],
    ),
    progress=print,
)
```

`configure(None)` leaves the action unconfigured. Any other value that is not
a `Client` raises `ActionError`. `invoke` also raises `ActionError` when the
action has no client, when a status lookup fails, or when the build request
fails. Its `summary` and `detail` say which step failed.

## What this package does not do

This package is a library only. It has no command-line program and no plugin
server, and it does not store any state. Call it from your own code.