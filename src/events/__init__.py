from src.events.notifier import INotifier, InProcessNotifier, NotifierNotConnectedError
