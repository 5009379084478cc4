# Packages of the reflection service itself. Services under these are
# infrastructure and never reported.
REFLECTION_PACKAGES = ('grpc.reflection.v1alpha', 'grpc.reflection.v1')

# Descriptor sources key services as "<package>/<Service>".
SERVICE_KEY_SEPARATOR = '/'

# Type name given to every enum-classified field.
ENUM_TYPE_NAME = 'enum'

# Symbolic prefix of FieldDescriptorProto.Type values ("TYPE_INT32").
SCALAR_TYPE_PREFIX = 'TYPE_'

DEFAULT_TIMEOUT = 10.0
LOG_FILE = 'error.log'
