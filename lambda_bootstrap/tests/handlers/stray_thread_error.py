import threading

release = threading.Event()
threads = []


def _fail_later():
    release.wait(5)
    raise RuntimeError("late failure")


def handler(event, context):
    if event.get("spawn"):
        worker = threading.Thread(target=_fail_later, name="stray-worker")
        worker.start()
        threads.append(worker)
    return {"eventNo": event.get("eventNo")}
