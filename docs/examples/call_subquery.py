# type: ignore
# /// script
# dependencies = [
#   "querydoc[neo4j]",
#   "rich",
# ]
# requires-python = ">=3.9"
# ///
"""Manual page for the Cypher ``CALL {}`` subquery clause.

Every example runs against a Neo4j server seeded with four people. Start one
locally and point ``NEO4J_URI`` at it (``NEO4J_USER``/``NEO4J_PASSWORD`` and
``NEO4J_IMPORT_DIR`` are read as well), then run this file.
"""

import os

from rich import print

from querydoc import (
    DocBuilder,
    Document,
    DocumentationConfig,
    Presentation,
    QueryDoc,
    QueryTextReplacement,
    StatePolicy,
    expect_empty,
    expect_error,
    expect_rows,
)
from querydoc.adapters.neo4j import Neo4jEngine
from querydoc.utils.logging import configure_logging
from querydoc.utils.text import strip_margin

__all__ = ("build_call_subquery_doc", "main")


def build_call_subquery_doc(builder: "DocBuilder | None" = None) -> Document:
    """Declare the ``CALL {}`` manual page."""
    b = builder or DocBuilder()
    b.doc("CALL {} (subquery)", "query-call-subquery")
    b.init_queries(strip_margin("""CREATE
                   |  (a:Person:Child {age: 20, name: 'Alice'}),
                   |  (b:Person {age: 27, name: 'Bob'}),
                   |  (c:Person:Parent {age: 65, name: 'Charlie'}),
                   |  (d:Person {age: 30, name: 'Dora'})
                   |  CREATE (a)-[:FRIEND_OF]->(b)
                   |  CREATE (a)-[:CHILD_OF]->(c)"""))
    b.synopsis("The `CALL {}` clause evaluates a subquery that returns some values.")
    b.p(strip_margin("""* <<subquery-call-introduction, Introduction>>
          |* <<subquery-correlated-importing, Importing variables into subqueries>>
          |* <<subquery-post-union, Post-union processing>>
          |* <<subquery-aggregation, Aggregations>>
          |* <<subquery-unit, Unit subqueries and side-effects>>
          |* <<subquery-correlated-aggregation, Aggregation on imported variables>>
          |* <<subquery-call-in-transactions, Subqueries in transactions>>"""))

    with b.section("Introduction", "subquery-call-introduction"):
        b.p(strip_margin("""CALL allows to execute subqueries, i.e. queries inside of other queries.
              |Subqueries allow you to compose queries, which is especially useful when working with `UNION` or
              |aggregations."""))
        with b.tip():
            b.p(strip_margin("""The `CALL` clause is also used for calling procedures.
                  |For descriptions of the `CALL` clause in this context, refer to <<query-call>>."""))
        b.p(strip_margin("""
              |Subqueries which end in a `RETURN` statement are called _returning subqueries_ while subqueries
              |without such a return statement are called _unit subqueries_."""))
        b.p(strip_margin("""
              |A subquery is evaluated for each incoming input row. Every output row of a *returning subquery* is
              |combined with the input row to build the result of the subquery.
              |That means that a returning subquery will influence the number of rows.
              |If the subquery does not return any rows, there will be no rows available after the subquery."""))
        b.p(strip_margin("""
              |*Unit subqueries* on the other hand are called for their side-effects and not for their results and
              |do therefore not influence the results of the enclosing query."""))
        b.p("There are restrictions on how subqueries interact with the enclosing query:")
        b.p(strip_margin("""
              |* A subquery can only refer to variables from the enclosing query if they are explicitly imported.
              |* A subquery cannot return variables with the same names as variables in the enclosing query.
              |* All variables that are returned from a subquery are afterwards available in the enclosing query."""))
        b.p("The following graph is used for the examples below:")
        b.state_view()

    with b.section("Importing variables into subqueries", "subquery-correlated-importing"):
        b.p(strip_margin("""Variables are imported into a subquery using an importing `WITH` clause.
              |As the subquery is evaluated for each incoming input row, the imported variables get bound to the
              |corresponding values from the input row in each evaluation."""))
        b.query(
            strip_margin("""UNWIND [0, 1, 2] AS x
              |CALL {
              |  WITH x
              |  RETURN x * 10 AS y
              |}
              |RETURN x, y"""),
            expect_rows({"x": 0, "y": 0}, {"x": 1, "y": 10}, {"x": 2, "y": 20}),
        )
        b.p("An importing `WITH` clause must:")
        b.p(strip_margin("""* Consist only of simple references to outside variables - e.g. `WITH x, y, z`. Aliasing or
              |expressions are not supported in importing `WITH` clauses - e.g. `WITH a AS b` or `WITH a+1 AS b`.
              |* Be the first clause of a subquery (or the second clause, if directly following a `USE` clause)."""))

    with b.section("Post-union processing", "subquery-post-union"):
        b.p(strip_margin("""Subqueries can be used to process the results of a `UNION` query further.
              |This example query finds the youngest and the oldest person in the database and orders them by
              |name."""))
        b.query(
            strip_margin("""CALL {
              |  MATCH (p:Person)
              |  RETURN p
              |  ORDER BY p.age ASC
              |  LIMIT 1
              |UNION
              |  MATCH (p:Person)
              |  RETURN p
              |  ORDER BY p.age DESC
              |  LIMIT 1
              |}
              |RETURN p.name, p.age
              |ORDER BY p.name"""),
            expect_rows({"p.name": "Alice", "p.age": 20}, {"p.name": "Charlie", "p.age": 65}, ordered=True),
        )
        b.p(strip_margin("""
              |If different parts of a result should be matched differently, with some aggregation over the whole
              |results, subqueries need to be used.
              |This example query finds friends and/or parents for each person.
              |Subsequently the number of friends and parents are counted together."""))
        b.query(
            strip_margin("""MATCH (p:Person)
              |CALL {
              |  WITH p
              |  OPTIONAL MATCH (p)-[:FRIEND_OF]->(other:Person)
              |  RETURN other
              |UNION
              |  WITH p
              |  OPTIONAL MATCH (p)-[:CHILD_OF]->(other:Parent)
              |  RETURN other
              |}
              |RETURN DISTINCT p.name, count(other)"""),
            expect_rows(
                {"p.name": "Alice", "count(other)": 2},
                {"p.name": "Bob", "count(other)": 0},
                {"p.name": "Charlie", "count(other)": 0},
                {"p.name": "Dora", "count(other)": 0},
            ),
        )

    with b.section("Aggregations", "subquery-aggregation"):
        b.p(strip_margin("""
              |Returning subqueries change the number of results of the query: The result of the `CALL` clause is
              |the combined result of evaluating the subquery for each input row."""))
        b.p("The following example finds the name of each person and the names of their friends:")
        b.query(
            strip_margin("""MATCH (p:Person)
              |CALL {
              |  WITH p
              |  MATCH (p)-[:FRIEND_OF]-(c:Person)
              |  RETURN c.name AS friend
              |}
              |RETURN p.name, friend"""),
            expect_rows({"p.name": "Alice", "friend": "Bob"}, {"p.name": "Bob", "friend": "Alice"}),
        )
        b.p(strip_margin("""The number of results of the subquery changed the number of results of the enclosing query:
              |Instead of 4 rows, one for each node), there are now 2 rows which were found for Alice and Bob
              |respectively. No rows are returned for Charlie and Dora since they have no friends in our example
              |graph."""))
        b.p(strip_margin("""
              |We can also use subqueries to perform isolated aggregations. In this example we count the number of
              |relationships each person has. As we get one row from each evaluation of the subquery, the number
              |of rows is the same, before and after the `CALL` clause:"""))
        b.query(
            strip_margin("""MATCH (p:Person)
              |CALL {
              |  WITH p
              |  MATCH (p)--(c)
              |  RETURN count(c) AS numberOfConnections
              |}
              |RETURN p.name, numberOfConnections"""),
            expect_rows(
                {"p.name": "Alice", "numberOfConnections": 2},
                {"p.name": "Bob", "numberOfConnections": 1},
                {"p.name": "Charlie", "numberOfConnections": 1},
                {"p.name": "Dora", "numberOfConnections": 0},
            ),
        )

    with b.section("Unit subqueries and side-effects", "subquery-unit"):
        b.p("Unit subqueries do not return any rows and are therefore used for their side effects.")
        b.p(strip_margin("""
              |This example query creates five clones of each existing person. As the subquery is a unit subquery,
              |it does not change the number of rows of the enclosing query."""))
        b.query(
            strip_margin("""MATCH (p:Person)
              |CALL {
              |  WITH p
              |  UNWIND range (1, 5) AS i
              |  CREATE (:Person {name: p.name})
              |}
              |RETURN count(*)"""),
            expect_rows({"count(*)": 4}),
        )

    with b.section("Aggregation on imported variables", "subquery-correlated-aggregation"):
        b.p(strip_margin("""
              |Aggregations in subqueries are scoped to the subquery evaluation, also for imported variables.
              |The following example counts the number of younger persons for each person in the graph:"""))
        b.query(
            strip_margin("""MATCH (p:Person)
              |CALL {
              |  WITH p
              |  MATCH (other:Person)
              |  WHERE other.age < p.age
              |  RETURN count(other) AS youngerPersonsCount
              |}
              |RETURN p.name, youngerPersonsCount"""),
            expect_rows(
                {"p.name": "Alice", "youngerPersonsCount": 0},
                {"p.name": "Bob", "youngerPersonsCount": 1},
                {"p.name": "Charlie", "youngerPersonsCount": 3},
                {"p.name": "Dora", "youngerPersonsCount": 2},
            ),
        )

    with b.section("Subqueries in transactions", "subquery-call-in-transactions"):
        b.p(strip_margin("""
              |Subqueries can be made to execute in separate, inner transactions, producing intermediate commits.
              |This can come in handy when doing large write operations, like batch updates or imports.
              |To execute a subquery in separate transactions you add the modifier `IN TRANSACTIONS` after the
              |subquery."""))
        csv_dir = b.create_dir("csv-files")
        artists_csv = b.csv_file(
            "artists.csv",
            [
                ("1", "ABBA", "1992"),
                ("2", "Roxette", "1986"),
                ("3", "Europe", "1979"),
                ("4", "bob hund", "1991"),
                ("5", "The Cardigans", "1992"),
            ],
            directory=csv_dir,
        )
        csv_replacement = QueryTextReplacement("@csvFile", "file:///artists.csv", artists_csv)
        b.p(strip_margin("""The following example imports a CSV file using the `LOAD CSV` clause, and
              |creates nodes in separate transactions using `CALL {} IN TRANSACTIONS`
              |
              |.artists.csv
              |[source]
              |----
              |include::csv-files/artists.csv[]
              |----"""))
        b.add_query(
            strip_margin("""LOAD CSV FROM '@csvFile' AS line
              |CALL {
              |  WITH line
              |  CREATE (:Artist {name: line[1], year: toInteger(line[2])})
              |} IN TRANSACTIONS"""),
            assertions=expect_empty(),
            replacements=[csv_replacement],
        )
        b.p(strip_margin("""As the size of the CSV file in this example is small, only a single separate transaction is
              |started and committed."""))
        b.note("`CALL { ... } IN TRANSACTIONS` is only allowed in <<query-transactions, implicit transactions>>")

        with b.section("Batching"):
            b.p(strip_margin("""
                  |The amount of work to do in each separate transaction can be specified in terms of how many
                  |input rows to process before committing the current transaction and starting a new one.
                  |The number of input rows is set with the modifier `OF n ROWS` (or `ROW`).
                  |If omitted, the default batch size is 1000 rows.
                  |Here's the same example as above, but with one transaction every 2 input rows"""))
            b.add_query(
                strip_margin("""LOAD CSV FROM '@csvFile' AS line
                  |CALL {
                  |  WITH line
                  |  CREATE (:Artist {name: line[1], year: toInteger(line[2])})
                  |} IN TRANSACTIONS OF 2 ROWS"""),
                assertions=expect_empty(),
                replacements=[csv_replacement],
            )
            b.p("The query now starts and commits three separate transactions")
            b.p(strip_margin("""
                  |. The first two executions of the subquery (for the first two input rows from `LOAD CSV`) take
                  |place in the first transaction.
                  |. The first transaction is then committed before proceeding.
                  |. The next two executions of the subquery (for the next two input rows) take place in a second
                  |transaction.
                  |. The second transaction is committed.
                  |. The last execution of the subquery (for the last input row) takes place in a third transaction.
                  |. The third transaction is committed."""))

        with b.section("Errors"):
            b.p(strip_margin("""If an error occurs in `CALL {} IN TRANSACTIONS` the entire query fails and
                  |both the current inner transaction and the outer transaction are rolled back."""))
            b.important(
                "On error, any previously committed inner transactions remain committed, and are not rolled back."
            )
            b.p(strip_margin("""
                  |In the following example, the last subquery execution in the second inner transaction fails
                  |due to division by zero."""))
            b.add_query(
                strip_margin("""UNWIND [4, 2, 1, 0] AS i
                  |CALL {
                  |  WITH i
                  |  CREATE (:Example {num: 100/i})
                  |} IN TRANSACTIONS OF 2 ROWS
                  |RETURN i"""),
                assertions=expect_error("/ by zero"),
                state_policy=StatePolicy.KEEP,
                presentation=Presentation.ERROR_ONLY,
            )
            b.p(strip_margin("""
                  |When the failure occurred, the first transaction had already been committed, so the database
                  |contains two example nodes"""))
            b.add_query(
                strip_margin("""MATCH (e:Example)
                  |RETURN e.num"""),
                assertions=expect_rows({"e.num": 25}, {"e.num": 50}),
                state_policy=StatePolicy.CLEAR,
            )

    return b.build()


def main() -> None:
    """Verify the page against the server named by ``NEO4J_URI`` and emit it."""
    auth = (os.environ.get("NEO4J_USER", "neo4j"), os.environ.get("NEO4J_PASSWORD", "password"))
    params = {"uri": os.environ.get("NEO4J_URI", "bolt://localhost:7687"), "auth": auth}
    if import_dir := os.environ.get("NEO4J_IMPORT_DIR"):
        params["import_dir"] = import_dir
    configure_logging(os.environ.get("QUERYDOC_LOG_LEVEL", "INFO"), format_style="simple")
    config = DocumentationConfig()
    document = build_call_subquery_doc(DocBuilder(config))
    with Neo4jEngine(params) as engine:
        artifact = QueryDoc(config).verify(document, engine)
    print(f"[green]Wrote {artifact}[/]")


if __name__ == "__main__":
    main()
