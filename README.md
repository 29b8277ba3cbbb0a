# gatesrv

`gatesrv` is the HTTP entry point of a chat service. Clients talk to it to
register an account and to log in. User accounts live in MySQL and are
reached through stored procedures. Verification codes for registration are
read from Redis.

## Installation

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Configuration

By default the server reads `config.ini` from the current working
directory. Section and key names are case-sensitive. A missing section or
key counts as an empty value. An example:

```ini
[GateServer]
Port = 8080

[Redis]
Host = 127.0.0.1
Port = 6379
Passwd = password

[Mysql]
Host = 127.0.0.1
Port = 3306
User = chat
Passwd = password
Schema = chat
```

If no MySQL port is given, 3306 is used. A port that is not a number stops
the server at start-up. The database connection pool uses these built-in
settings:

| Setting                       | Value |
|-------------------------------|-------|
| initial connections           | 5     |
| maximum connections           | 20    |
| minimum idle connections      | 5     |
| maximum idle time, seconds    | 60    |
| acquire timeout, seconds      | 30    |
| validation interval, seconds  | 30    |
| eviction interval, seconds    | 30    |

The Redis pool opens 5 connections. Those that fail are skipped and logged.

## Running

```
gatesrv
gatesrv --config /path/to/config.ini
```

At start-up the server prints the path of the configuration file and every
section with its keys. It then opens the MySQL and Redis pools and listens
on all IPv4 addresses at the `[GateServer] Port`. It stops on SIGINT or
SIGTERM. If the configuration cannot be read or the database pool cannot
open its initial connections, it prints `Error: ...` to standard error and
exits with status 1.

Each request is handled in its own thread. Every response closes the
connection and carries the header `Server: GateServer`.

## Endpoints

| Method | Path              | Body (JSON)                                         |
|--------|-------------------|-----------------------------------------------------|
| GET    | `/get_test`       | none; echoes the query parameters                   |
| POST   | `/get_varifycode` | `{"email": ...}`                                    |
| POST   | `/register`       | `{"username", "email", "password", "verify_code"}`  |
| POST   | `/login`          | `{"username", "password"}`                          |

Unknown paths are answered with `404` and the text `url not found`. A GET
query with a malformed `%` escape is answered with `400`. Only GET and POST
are handled.

POST replies have the content type `text/json` and are a JSON object with an
`error` field. On a successful login the reply also carries `userInfo` with
`userId`, `username`, `nickname`, `avatar`, `email` and `status`, and the
user is marked `online`.

Example:

```
curl -X POST http://localhost:8080/login \
     -d '{"username": "alice", "password": "password"}'
```

### Error codes

| Code | Meaning                                           |
|------|---------------------------------------------------|
| 0    | success                                           |
| 1001 | request body is not a JSON object, or a field has the wrong type |
| 1002 | the verification service could not be reached     |
| 1003 | a required parameter is missing or empty          |
| 1004 | verification code missing or wrong                |
| 3001 | user not found                                    |
| 3002 | user already exists                               |
| 3003 | wrong password                                    |
| 3004 | login failed for another reason                   |
| 3005 | registration failed                               |

Registration compares `verify_code` with the value stored in Redis under
`code:<email>` (for example `code:alice@example.com`) and deletes that key
once the account has been created. New accounts get the user name as
nickname, the avatar `default.png` and the status `offline`.

## What it does not do

- It does not send verification codes. The `gatesrv` command has no
  verification service to call, so `/get_varifycode` always replies with
  error `1002`. Codes must be placed in Redis under `code:<email>` by
  something else. `gatesrv.logic.LogicSystem` takes a `verify_code(email)`
  callable that returns an error code, so a program that builds its own
  `LogicSystem` can supply one.
- It does not create the MySQL tables or stored procedures; the database must
  already provide `proc_add_user`, `proc_find_user_by_username`,
  `proc_find_user_by_id`, `proc_update_user_status`,
  `proc_update_last_login_time`, `proc_get_friend_list`,
  `proc_verify_password`, `proc_add_friend`, `proc_remove_friend` and
  `proc_batch_get_user_info`.
- Passwords are passed to the database as given; no hashing is done.
- It issues no session tokens after login.
- If no Redis connection could be opened, requests that need Redis wait for
  one.

## Using the pieces

The building blocks can be used on their own:

- `gatesrv.config.ConfigMgr` reads INI files with `ConfigMgr.from_file(path)`.
  Looking up a missing section or key gives an empty value instead of
  raising; `dump()` renders all sections as text.
- `gatesrv.urlcodec` has `url_encode`, `url_decode` and `parse_target`, which
  splits a request target into its path and decoded query parameters.
- `gatesrv.dbpool.DBConnectionPool` is a thread-safe pool of database
  connections, made by any callable that takes a `DBPoolConfig`. It pings
  idle connections, evicts those idle too long, and has `acquire`,
  `release`, `stats` and `shutdown`.
- `gatesrv.dbmanager.DBManager` builds the pool from the `[Mysql]` section
  and hands out connections with `with manager.acquire() as wrapper:`.
- `gatesrv.user_dao.UserDAO` runs the user stored procedures and returns
  `DAOResult` objects; `gatesrv.user_manager.UserManager` adds registration,
  login, logout and friend-list logic and returns `ManagerResult` objects
  with a `ResultCode`.
- `gatesrv.redis_pool.RedisConPool` is a blocking pool of Redis connections;
  `gatesrv.redis_mgr.RedisMgr` runs single commands on it (`get`, `set`,
  `lpush`, `lpop`, `rpush`, `rpop`, `hset`, `hget`, `delete`, `exists_key`),
  returning `False`, `None` or `""` on failure instead of raising.
- `gatesrv.logic.LogicSystem` maps GET and POST paths to handlers; more can
  be added with `reg_get` and `reg_post`.
- `gatesrv.server.handle_request(logic, method, target, body)` turns a
  request into a `Response` without opening a socket, and
  `gatesrv.server.GateServer(port, logic)` serves a `LogicSystem` over HTTP.