from PyQt5.QtCore import QObject, pyqtSignal
from grpcschema.helper import helper
from grpcschema.resolver import get_info


class SchemaWorker(QObject):
    finished = pyqtSignal(dict)
    error = pyqtSignal(str)

    def __init__(self, host, creds=None, auth=None, timeout=None):
        super().__init__()
        self.helpercls = helper()
        self.host = host
        self.creds = creds or {}
        self.auth = auth
        self.timeout = timeout

    def run(self):
        if not self.host:
            self.finished.emit({'error': True, 'data': 'Host is required'})
            return

        try:
            services = get_info(self.host, creds=self.creds, auth=self.auth, timeout=self.timeout)
        except Exception as e:
            self.helpercls.log(function_name='SchemaWorker.run', args=[self.host], exception=e)
            self.error.emit(str(e))
            return

        self.finished.emit({'error': False, 'data': [service.to_dict() for service in services]})
