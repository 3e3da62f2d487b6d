# goods_service

A small service for keeping a list of goods per project. Every good has a
name, a description and a priority; goods can be created, read, updated,
soft-deleted and moved to a new priority. Single goods and the counters are
cached, and every change is published as an event (`good.created`,
`good.updated`, `good.deleted`, `good.reprioritized`) that a subscriber
writes to an event log table.

The HTTP layer is a plain WSGI application built on Werkzeug, so it runs
under any WSGI server.

## Pieces

- `goods_service.config` – `Config` and `load_config`, reading settings from
  a `.env` file and the environment.
- `goods_service.models` – `Good`, `Project`, `ClickhouseEvent`,
  `PriorityItem`, `PriorityResponse` and the `NotFoundError` exception. Each
  record has a `to_dict()` giving its JSON shape; `Good.from_dict` decodes a
  JSON object, matching keys case-insensitively.
- `goods_service.postgres_repository` – `PostgresRepository`, the primary
  store, working through any DB-API connection. Its `paramstyle` argument is
  `"format"` (the default), `"pyformat"` or `"qmark"`. Each call runs in its
  own transaction, committed on success and rolled back on error.
- `goods_service.redis_repository` – `RedisRepository`, caching single goods
  for one minute under keys of the form `good:<projectId>:<id>` (see
  `good_key`), plus the total and removed counters, also for one minute.
  `CacheMissError` signals an absent counter.
- `goods_service.clickhouse_repository` – `ClickhouseRepository`, appending
  events to the `goods_log` table.
- `goods_service.good_service` – `GoodService`, the business logic tying the
  store, the cache and the event publisher together.
- `goods_service.nats_subscriber` – `NatsSubscriber`, subscribing to `good.*`
  and writing each event to the log; `handle_message` returns whether the
  event was logged.
- `goods_service.handler` – `Handler`, one method per endpoint, with the
  helpers `get_id`, `get_project_id`, `get_pagination_params`,
  `json_response` and `error_response`.
- `goods_service.router` – `Router`, the WSGI application dispatching
  requests to a `Handler`.

## Wiring it up

The package installs no database or messaging clients. Each repository takes
an object you supply:

- `PostgresRepository(connection)` – a DB-API connection offering
  `cursor()`, `commit()` and `rollback()`.
- `RedisRepository(client)` – a client offering `get`, `set(key, value, ex=...)`,
  `delete` and `pipeline()`, such as a redis-py client.
- `ClickhouseRepository(conn)` – a connection offering
  `execute(query, rows)`.
- `GoodService(..., publisher)` – an object offering
  `publish(subject, data)`, with `data` as bytes.
- `NatsSubscriber(conn, clickhouse_repo)` – an object offering
  `subscribe(subject, callback)`, calling back with the subject and the raw
  message data.

```python
from werkzeug.serving import run_simple

from goods_service.config import load_config
from goods_service.clickhouse_repository import ClickhouseRepository
from goods_service.good_service import GoodService
from goods_service.handler import Handler
from goods_service.nats_subscriber import NatsSubscriber
from goods_service.postgres_repository import PostgresRepository
from goods_service.redis_repository import RedisRepository
from goods_service.router import Router

config = load_config(".env")

# db_connection, cache_client, log_connection and bus are the client objects
# described above, opened with the settings in `config`.
postgres = PostgresRepository(db_connection)
cache = RedisRepository(cache_client)
event_log = ClickhouseRepository(log_connection)

NatsSubscriber(bus, event_log).subscribe()
service = GoodService(postgres, cache, event_log, bus)
app = Router(Handler(service))

run_simple("0.0.0.0", int(config.http_port), app)
```

## Configuration

`load_config` raises `FileNotFoundError` if the `.env` file does not exist;
otherwise it reads the file and lets the process environment override it.
`Config.from_env` builds a configuration straight from a mapping (by default
`os.environ`). Empty values fall back to the defaults. Recognised variables:

| Variable          | Field         | Default            |
|-------------------|---------------|--------------------|
| `HTTP_PORT`       | `http_port`   | `8080`             |
| `DB_HOST`         | `db_host`     | `postgres`         |
| `DB_PORT`         | `db_port`     | `5432`             |
| `DB_USER`         | `db_user`     | `user`             |
| `DB_PASSWORD`     | `db_password` | `password`         |
| `DB_NAME`         | `db_name`     | `goods`            |
| `REDIS_HOST`      | `redis_host`  | `redis`            |
| `REDIS_PORT`      | `redis_port`  | `6379`             |
| `CLICKHOUSE_HOST` | `ch_host`     | `clickhouse`       |
| `CLICKHOUSE_PORT` | `ch_port`     | `9000`             |
| `NATS_URL`        | `nats_url`    | `nats://nats:4222` |

All values are strings.

## HTTP API

All routes live under `/api/v1` and answer with JSON.

| Method   | Path                  | Purpose                                    |
|----------|-----------------------|--------------------------------------------|
| `GET`    | `/goods/list`         | Paginated list (`limit` ≤ 100, default 10; `offset` default 0) |
| `POST`   | `/good/create`        | Create a good in `projectId`               |
| `GET`    | `/goods`              | Fetch one good                             |
| `PATCH`  | `/good/update`        | Change name and description                |
| `DELETE` | `/good/remove`        | Mark a good as removed                     |
| `PATCH`  | `/good/reprioritiize` | Move a good to `{"newPriority": n}`, n ≥ 1 |

`projectId` is a required positive integer query parameter. The good's id
for the fetch, update, remove and reprioritise routes is read from that same
`projectId` parameter. A new good gets the next free priority within its
project. Removing a good answers `{"id": ..., "campaignId": ..., "removed": true}`.

The list endpoint returns

```json
{"meta": {"total": 12, "removed": 3, "limit": 10, "offset": 0}, "goods": [...]}
```

with `goods` as `null` when the page is empty. Invalid `limit` or `offset`
values fall back to the defaults.

Errors have the shape `{"code": ..., "message": ..., "details": {}}`:

- status 400, code 4 for invalid parameters or bodies;
- status 400, code 3, message `errors.common.notFound` for a missing good
  (the fetch route answers this for any failure);
- status 500, code 5 for internal failures (code 4 on the remove route).

Unknown paths get a plain-text 404, a known path with the wrong method an
empty 405, and paths that are not in canonical form a 301 to the cleaned
path.

## What the package does not do

There is no command-line program or server start-up: the package does not
open connections to the database, cache, event log or message bus itself, nor
install the client libraries for them. You create those clients, hand them to
the repositories and serve `Router` with a WSGI server of your choice. The
table schemas are not created by the package either.

## Tests

The test suite uses pytest and is installed with the `test` extra.