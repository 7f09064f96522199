"""Document review -- a workflow bound to a plain Python object.

Demonstrates:
- Registering a workflow for a class with the builder DSL
- Attaching it to instances so events read like methods
- Soft halts from an action, and the spec-wide transition hook
- Reconstituting a document from a stored state name

Run: python -m examples.review
"""

import logging

from tick_workflow import WorkflowHost, WorkflowRegistry, attach

registry = WorkflowRegistry()


class Document(WorkflowHost):
    def __init__(self, title: str, body: str = "", state: str | None = None) -> None:
        self.title = title
        self.body = body
        self.stored_state: str | None = None
        attach(self, registry, state=state, on_change=self._store)

    def _store(self, state_name: str) -> None:
        self.stored_state = state_name


def submit(doc: Document) -> None:
    # An empty body never reaches review.
    if not doc.body:
        doc.halt("body is empty")


def define(wf) -> None:
    wf.state("draft").event("submit", to="review", action=submit)
    with wf.state("review") as review:
        review.event("approve", to="published")
        review.event("reject", to="draft")
        review.on_entry(lambda doc, prior, event: print(f"  {doc.title!r} waiting for review"))
    wf.state("published")

    @wf.on_transition
    def announce(doc, src, dst, event, *args):
        print(f"  {doc.title!r}: {src} --{event}--> {dst}")


registry.register(Document, define)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    print("=== Document review ===\n")

    doc = Document("Release notes")
    if not doc.submit():
        print(f"  submit halted: {doc.halted_because}")

    doc.body = "Everything is faster."
    doc.submit()
    doc.approve()
    print(f"  published? {doc.is_published()}  (stored: {doc.stored_state})")

    print("\nReloading a document stored in review...")
    loaded = Document("Roadmap", body="Q3 plans", state="review")
    print(f"  state={loaded.state}  events={loaded.available_events()}")
    loaded.reject()
    print(f"  back to draft? {loaded.is_draft()}")


if __name__ == "__main__":
    main()
