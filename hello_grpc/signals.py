from blinker import Namespace

_signals = Namespace()

rpc_startup = _signals.signal("hello.startup")
rpc_shutdown = _signals.signal("hello.shutdown")
